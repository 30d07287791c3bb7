"""
Preview State - Story and UI state containers.

Design principles:
- Immutable-friendly: reducers return new state objects, never mutate
- Two independent domains: story (narrative timeline) and ui (presentation flags)
- Serializable: plain dataclasses that map directly onto API schemas
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Any, ClassVar, Union
from copy import deepcopy
from enum import Enum


class ErrorSeverity(str, Enum):
    """Severity of an error shown in the preview."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ErrorInfo:
    """An error, warning or note produced while running the story."""
    message: str
    severity: ErrorSeverity = ErrorSeverity.ERROR


@dataclass
class Choice:
    """
    A choice offered by the engine.

    index is the engine-native selection index, not a UI position.
    """
    index: int
    text: str
    tags: list[str] = field(default_factory=list)


@dataclass
class TextEvent:
    """A line of story text with the tags attached to it."""
    event_type: ClassVar[str] = "text"

    text: str
    tags: list[str] = field(default_factory=list)
    is_current: bool = False

    def with_current(self, is_current: bool) -> TextEvent:
        return replace(self, is_current=is_current)


@dataclass
class FunctionCallEvent:
    """An external function invoked by the story, with its arguments and result."""
    event_type: ClassVar[str] = "function"

    function_name: str
    args: list[Any] = field(default_factory=list)
    result: Any = None
    is_current: bool = False

    def with_current(self, is_current: bool) -> FunctionCallEvent:
        return replace(self, is_current=is_current)


StoryEvent = Union[TextEvent, FunctionCallEvent]


@dataclass
class StoryState:
    """
    Story domain state.

    Events at or after last_choice_index are "current": they happened
    since the most recent choice point was published.
    """
    events: list[StoryEvent] = field(default_factory=list)
    current_choices: list[Choice] = field(default_factory=list)
    errors: list[ErrorInfo] = field(default_factory=list)
    is_ended: bool = False
    is_start: bool = False
    last_choice_index: int = 0

    def _copy_with(self, **kwargs) -> StoryState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    def clone(self) -> StoryState:
        """Deep copy the state."""
        return deepcopy(self)


@dataclass
class UIState:
    """UI domain state: presentation flags only, no narrative content."""
    rewind_available: bool = False
    live_update_enabled: bool = True

    def _copy_with(self, **kwargs) -> UIState:
        return replace(self, **kwargs)

    def clone(self) -> UIState:
        return deepcopy(self)


@dataclass
class PreviewState:
    """The externally observable snapshot: both domains together."""
    story: StoryState = field(default_factory=StoryState)
    ui: UIState = field(default_factory=UIState)

    def clone(self) -> PreviewState:
        return PreviewState(story=self.story.clone(), ui=self.ui.clone())


def mark_current_events(events: list[StoryEvent], last_choice_index: int) -> list[StoryEvent]:
    """Return events with is_current recomputed against the choice cursor."""
    return [
        event.with_current(index >= last_choice_index)
        for index, event in enumerate(events)
    ]
