"""
Preview Store - Owns preview state and is the single write path for it.

All changes go through dispatch(). The store:
- Rejects story-dependent actions while no engine is bound
- Routes each action to its domain context (story or ui)
- Records a history entry per domain when the domain state changed,
  unless the action returned False from apply()
- Replays history for undo and rewind
- Notifies subscribers once the outermost dispatch has returned

Nested dispatch runs depth-first on the same call stack, so entries for
nested actions are recorded before the entry of the action that
dispatched them. Each entry remembers how many such nested entries
precede it; undo() and undo_to_last() use that to cut a whole group at once.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Generic, TypeVar
import logging
import time

from ..config import DEFAULT_HISTORY_CAPACITY
from .action import ActionCategory, ActionType, PreviewAction, STORY_DEPENDENT_ACTIONS
from .errors import EngineUnavailableError, InvalidReplayIndexError
from .history import HistoryEntry, HistoryLog
from .state import ErrorInfo, PreviewState, StoryState, UIState
from .story_actions import AddErrors
from .story_manager import StoryManager

log = logging.getLogger(__name__)

T = TypeVar("T")


class _Domain(Generic[T]):
    """State, history and change callback for one domain."""

    def __init__(self, category: ActionCategory, default_factory: Callable[[], T], capacity: int):
        self.category = category
        self.default_factory = default_factory
        self.state: T = default_factory()
        self.history: HistoryLog[T] = HistoryLog(capacity)
        self.on_change: Callable[[], None] | None = None
        self.context = None

    def reset(self) -> None:
        self.state = self.default_factory()
        self.history.clear()


class _StoryContext:
    """Story domain capabilities handed to story actions."""

    def __init__(self, store: PreviewStore):
        self._store = store

    @property
    def story_manager(self) -> StoryManager | None:
        return self._store.story_manager

    def get_state(self) -> StoryState:
        return self._store._story.state

    def set_state(self, state: StoryState) -> None:
        self._store._story.state = state

    def dispatch(self, action: PreviewAction) -> None:
        self._store.dispatch(action)


class _UIContext:
    """UI domain capabilities handed to UI actions."""

    def __init__(self, store: PreviewStore):
        self._store = store

    def get_state(self) -> UIState:
        return self._store._ui.state

    def get_story_state(self) -> StoryState:
        return self._store.get_story_state()

    def set_state(self, state: UIState) -> None:
        self._store._ui.state = state

    def dispatch(self, action: PreviewAction) -> None:
        self._store.dispatch(action)

    def rewind_story_to_last_choice(self) -> None:
        self._store.rewind_to_last_choice()

    def can_rewind_story(self) -> bool:
        return self._store._story.history.contains(ActionType.SELECT_CHOICE)


class PreviewStore:
    """
    Action dispatcher for the story and UI domains.

    Usage:
        store = PreviewStore(story_manager=StoryManager(engine))
        store.dispatch(StartStory())
        store.dispatch(SelectChoice(0))
        store.rewind_to_last_choice()
    """

    def __init__(
        self,
        story_manager: StoryManager | None = None,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
    ):
        self._story: _Domain[StoryState] = _Domain(ActionCategory.STORY, StoryState, history_capacity)
        self._ui: _Domain[UIState] = _Domain(ActionCategory.UI, UIState, history_capacity)
        self._story.context = _StoryContext(self)
        self._ui.context = _UIContext(self)
        self._domains: dict[ActionCategory, _Domain] = {
            ActionCategory.STORY: self._story,
            ActionCategory.UI: self._ui,
        }

        self._story_manager: StoryManager | None = None
        self._depth = 0
        self._dirty: set[ActionCategory] = set()

        self.set_story_manager(story_manager)

    # =========================================================================
    # Engine binding
    # =========================================================================

    @property
    def story_manager(self) -> StoryManager | None:
        return self._story_manager

    def set_story_manager(self, manager: StoryManager | None) -> None:
        """Bind (or with None, unbind) the manager story actions drive."""
        previous = self._story_manager
        if previous is not None and previous is not manager:
            previous.on_error(None)

        self._story_manager = manager
        if manager is not None:
            manager.on_error(self._handle_engine_error)
        log.debug("Story manager %s", "bound" if manager else "unbound")

    def _handle_engine_error(self, info: ErrorInfo) -> None:
        self.dispatch(AddErrors([info]))

    # =========================================================================
    # Dispatch
    # =========================================================================

    def dispatch(self, action: PreviewAction) -> PreviewState:
        """
        Apply an action and return the combined state afterwards.

        Raises EngineUnavailableError, before touching any state, for a
        story-dependent action while no engine is bound.
        """
        action_type = getattr(action, "type", None)
        if action_type in STORY_DEPENDENT_ACTIONS and self._story_manager is None:
            raise EngineUnavailableError(action_type.value)

        domain = self._domains.get(getattr(action, "category", None))
        if domain is None:
            log.warning(
                "Ignoring action %r with unknown category %r",
                action_type, getattr(action, "category", None),
            )
            return self.get_state()

        log.debug("Dispatch %s (depth %d)", action_type.value, self._depth)

        before = domain.state
        recorded_before = domain.history.recorded

        self._depth += 1
        try:
            recorded = action.apply(domain.context) is not False

            if recorded and domain.state is not before:
                nested_count = max(0, domain.history.recorded - recorded_before)
                domain.history.append(HistoryEntry(
                    action=action,
                    timestamp=time.time(),
                    state_before=before,
                    state_after=domain.state,
                    nested_count=nested_count,
                ))
                self._dirty.add(domain.category)
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._notify()

        return self.get_state()

    # =========================================================================
    # State access
    # =========================================================================

    def get_state(self) -> PreviewState:
        return PreviewState(story=self._story.state.clone(), ui=self._ui.state.clone())

    def get_story_state(self) -> StoryState:
        return self._story.state.clone()

    def get_ui_state(self) -> UIState:
        return self._ui.state.clone()

    def get_story_history(self) -> list[HistoryEntry[StoryState]]:
        return self._copy_history(self._story)

    def get_ui_history(self) -> list[HistoryEntry[UIState]]:
        return self._copy_history(self._ui)

    @staticmethod
    def _copy_history(domain: _Domain) -> list[HistoryEntry]:
        return [
            replace(
                entry,
                state_before=entry.state_before.clone(),
                state_after=entry.state_after.clone(),
            )
            for entry in domain.history
        ]

    # =========================================================================
    # Replay / undo
    # =========================================================================

    def replay(
        self,
        to_index: int | None = None,
        domain: ActionCategory = ActionCategory.STORY,
    ) -> PreviewState:
        """
        Rebuild a domain from its history up to (excluding) to_index.

        Pure reducer entries are dispatched again. Entries for actions with
        side effects are restored from their recorded state_after and the
        engine is never called for them.
        """
        target = self._domains[ActionCategory(domain)]
        entries = target.history.entries()
        if to_index is None:
            to_index = len(entries)
        if to_index < 0 or to_index > len(entries):
            raise InvalidReplayIndexError(to_index, len(entries))

        log.debug("Replaying %s history to %d of %d", target.category.value, to_index, len(entries))

        # Once the head has been evicted the oldest retained snapshot is the base
        if target.history.evicted and entries:
            base = entries[0].state_before
        else:
            base = target.default_factory()

        self._depth += 1
        try:
            target.state = base
            target.history.clear(keep_evicted=True)

            for entry in entries[:to_index]:
                if entry.action.replayable:
                    self.dispatch(entry.action)
                else:
                    target.history.append(replace(entry, state_before=target.state))
                    target.state = entry.state_after

            self._dirty.add(target.category)
            if target.category == ActionCategory.STORY:
                self._resync_engine()
        finally:
            self._depth -= 1
            if self._depth == 0:
                self._notify()

        return self.get_state()

    def undo(self, domain: ActionCategory = ActionCategory.STORY) -> PreviewState:
        """
        Drop the last recorded action of a domain. No-op on empty history.

        Entries recorded by that action's nested dispatches are dropped with
        it, so the engine is resynced to a state that matches the log.
        """
        history = self._domains[ActionCategory(domain)].history
        if not len(history):
            return self.get_state()
        return self.replay(history.group_start(len(history) - 1), domain)

    def undo_to_last(
        self,
        action_type: ActionType | str,
        domain: ActionCategory = ActionCategory.STORY,
    ) -> PreviewState:
        """
        Restore the state from just before the last action of this type.

        Entries recorded by that action's nested dispatches are cut with
        it. Not found replays to the start. A known type always uses its
        own domain; a name that is no action type replays `domain`.
        """
        try:
            action_type = ActionType(action_type)
        except ValueError:
            log.debug("Unknown action type %r, replaying to start", action_type)
            return self.replay(0, domain)

        domain = action_type.category
        history = self._domains[domain].history

        index = history.last_index_of(action_type)
        if index is None:
            log.debug("No %s in history, replaying to start", action_type.value)
            return self.replay(0, domain)
        return self.replay(history.group_start(index), domain)

    def rewind_to_last_choice(self) -> PreviewState:
        return self.undo_to_last(ActionType.SELECT_CHOICE)

    def reset(self) -> None:
        """Both domains back to defaults, both histories cleared."""
        log.debug("Resetting store")
        for domain in self._domains.values():
            domain.reset()
            self._dirty.add(domain.category)
        if self._depth == 0:
            self._notify()

    def _resync_engine(self) -> None:
        """Re-drive the bound engine along the story history, muted."""
        manager = self._story_manager
        if manager is None:
            return
        if self._story.history.evicted:
            log.warning("Story history head was evicted; engine not resynced")
            return

        with manager.muted():
            manager.reset()
            for entry in self._story.history:
                entry.action.resync(manager)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def set_on_story_state_change(self, callback: Callable[[], None] | None) -> None:
        self._story.on_change = callback

    def set_on_ui_state_change(self, callback: Callable[[], None] | None) -> None:
        self._ui.on_change = callback

    def _notify(self) -> None:
        dirty, self._dirty = self._dirty, set()
        for category in (ActionCategory.STORY, ActionCategory.UI):
            callback = self._domains[category].on_change
            if category in dirty and callback:
                callback()

    def dispose(self) -> None:
        """Drop callbacks and unbind the engine."""
        self.set_on_story_state_change(None)
        self.set_on_ui_state_change(None)
        self.set_story_manager(None)
