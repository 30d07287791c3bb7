"""
Tests for the bounded history log.
"""

import pytest

from ..engine_core.history import HistoryEntry, HistoryLog
from ..engine_core.state import StoryState
from ..engine_core.story_actions import AddErrors, ClearErrors, SelectChoice


def entry(action, nested_count=0):
    return HistoryEntry(
        action=action,
        timestamp=0.0,
        state_before=StoryState(),
        state_after=StoryState(),
        nested_count=nested_count,
    )


class TestHistoryLog:
    """Ring buffer behavior."""

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            HistoryLog(0)

    def test_evicts_oldest_first(self):
        log = HistoryLog(3)
        actions = [AddErrors([]) for _ in range(5)]
        for action in actions:
            log.append(entry(action))

        assert len(log) == 3
        assert log.evicted == 2
        assert log.recorded == 5
        assert [e.action for e in log] == actions[2:]
        assert log[0].action is actions[2]

    def test_index_out_of_range(self):
        log = HistoryLog(2)
        log.append(entry(ClearErrors()))

        with pytest.raises(IndexError):
            log[1]
        with pytest.raises(IndexError):
            log[-1]

    def test_clear_resets_eviction_unless_kept(self):
        log = HistoryLog(1)
        log.append(entry(ClearErrors()))
        log.append(entry(ClearErrors()))

        log.clear(keep_evicted=True)
        assert len(log) == 0
        assert log.evicted == 1

        log.clear()
        assert log.evicted == 0

    def test_last_index_of(self):
        log = HistoryLog(10)
        for action in [AddErrors([]), ClearErrors(), AddErrors([]), ClearErrors()]:
            log.append(entry(action))

        assert log.last_index_of("ADD_ERRORS") == 2
        assert log.last_index_of("CLEAR_ERRORS") == 3
        assert log.last_index_of("SELECT_CHOICE") is None
        assert log.contains("ADD_ERRORS")
        assert not log.contains("SELECT_CHOICE")

    def test_group_start(self):
        log = HistoryLog(10)
        log.append(entry(ClearErrors()))
        log.append(entry(AddErrors([])))
        log.append(entry(AddErrors([])))
        log.append(entry(SelectChoice(0), nested_count=2))

        assert log.group_start(3) == 1
        assert log.group_start(0) == 0

    def test_group_start_clamps_after_eviction(self):
        log = HistoryLog(2)
        log.append(entry(AddErrors([])))
        log.append(entry(AddErrors([])))
        log.append(entry(SelectChoice(0), nested_count=2))

        assert log.group_start(1) == 0

    def test_entries_is_a_copy(self):
        log = HistoryLog(3)
        log.append(entry(ClearErrors()))

        log.entries().clear()

        assert len(log) == 1
