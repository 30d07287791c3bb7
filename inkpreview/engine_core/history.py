"""
History - Per-domain action log with bounded capacity.

The log is a ring buffer: once capacity is reached the oldest entry is
dropped. Indices are always relative to the oldest retained entry, so
index 0 is the first entry that can still be replayed.
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, Iterator, TypeVar

if TYPE_CHECKING:
    from .action import PreviewAction

T = TypeVar("T")


@dataclass
class HistoryEntry(Generic[T]):
    """
    One applied action with the domain state around it.

    nested_count is the number of entries the action's nested dispatches
    recorded in the same log before this entry.
    """
    action: PreviewAction
    timestamp: float
    state_before: T
    state_after: T
    nested_count: int = 0

    @property
    def action_type(self) -> str:
        return self.action.type.value


class HistoryLog(Generic[T]):
    """Fixed-capacity, append-only log of history entries."""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("History capacity must be >= 1")
        self._entries: deque[HistoryEntry[T]] = deque(maxlen=capacity)
        self._evicted = 0

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    @property
    def evicted(self) -> int:
        """Number of entries dropped from the head since the last clear()."""
        return self._evicted

    @property
    def recorded(self) -> int:
        """Total number of entries appended since the last clear(), evicted ones included."""
        return len(self._entries) + self._evicted

    def append(self, entry: HistoryEntry[T]) -> None:
        if len(self._entries) == self._entries.maxlen:
            self._evicted += 1
        self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry[T]]:
        return iter(list(self._entries))

    def __getitem__(self, index: int) -> HistoryEntry[T]:
        if index < 0 or index >= len(self._entries):
            raise IndexError(f"History index out of range: {index}")
        return self._entries[index]

    def entries(self) -> list[HistoryEntry[T]]:
        return list(self._entries)

    def clear(self, keep_evicted: bool = False) -> None:
        self._entries.clear()
        if not keep_evicted:
            self._evicted = 0

    def last_index_of(self, action_type: str) -> int | None:
        """Index of the last entry with the given action type, scanning from the end."""
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index].action.type == action_type:
                return index
        return None

    def group_start(self, index: int) -> int:
        """Index of the first entry recorded while entry `index` was being applied."""
        return max(0, index - self[index].nested_count)

    def contains(self, action_type: str) -> bool:
        return self.last_index_of(action_type) is not None
