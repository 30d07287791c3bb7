"""
Action System - Action types, categories, contexts and base classes.

Every state change flows through an action dispatched to the store.
Actions belong to exactly one domain:
1. Story actions operate on StoryState and may drive the engine
2. UI actions operate on UIState and coordinate between domains

The type -> category mapping is closed and checked when action classes
are defined.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Protocol

from .state import StoryState, UIState

if TYPE_CHECKING:
    from .story_manager import StoryManager


class ActionCategory(str, Enum):
    """State domain an action operates on."""
    STORY = "story"
    UI = "ui"


class ActionType(str, Enum):
    """Types of actions in the system."""
    # Story lifecycle
    START_STORY = "START_STORY"
    INITIALIZE_STORY = "INITIALIZE_STORY"
    CONTINUE_STORY = "CONTINUE_STORY"
    SELECT_CHOICE = "SELECT_CHOICE"
    END_STORY = "END_STORY"

    # Story reducers
    ADD_STORY_EVENTS = "ADD_STORY_EVENTS"
    SET_CURRENT_CHOICES = "SET_CURRENT_CHOICES"
    ADD_ERRORS = "ADD_ERRORS"
    CLEAR_ERRORS = "CLEAR_ERRORS"

    # UI
    SET_REWIND_ENABLED = "SET_REWIND_ENABLED"
    TOGGLE_LIVE_UPDATE = "TOGGLE_LIVE_UPDATE"
    RESTART_STORY = "RESTART_STORY"
    REWIND_STORY = "REWIND_STORY"

    @property
    def category(self) -> ActionCategory:
        return ACTION_CATEGORIES[self]


ACTION_CATEGORIES: dict[ActionType, ActionCategory] = {
    ActionType.START_STORY: ActionCategory.STORY,
    ActionType.INITIALIZE_STORY: ActionCategory.STORY,
    ActionType.CONTINUE_STORY: ActionCategory.STORY,
    ActionType.SELECT_CHOICE: ActionCategory.STORY,
    ActionType.END_STORY: ActionCategory.STORY,
    ActionType.ADD_STORY_EVENTS: ActionCategory.STORY,
    ActionType.SET_CURRENT_CHOICES: ActionCategory.STORY,
    ActionType.ADD_ERRORS: ActionCategory.STORY,
    ActionType.CLEAR_ERRORS: ActionCategory.STORY,
    ActionType.SET_REWIND_ENABLED: ActionCategory.UI,
    ActionType.TOGGLE_LIVE_UPDATE: ActionCategory.UI,
    ActionType.RESTART_STORY: ActionCategory.UI,
    ActionType.REWIND_STORY: ActionCategory.UI,
}

_unmapped = set(ActionType) - set(ACTION_CATEGORIES)
if _unmapped:
    raise RuntimeError(f"Action types without a category: {sorted(t.value for t in _unmapped)}")

# Actions that need a bound engine; checked before any state is touched
STORY_DEPENDENT_ACTIONS: frozenset[ActionType] = frozenset({
    ActionType.INITIALIZE_STORY,
    ActionType.CONTINUE_STORY,
    ActionType.SELECT_CHOICE,
})


# =============================================================================
# Contexts
# =============================================================================

class StoryActionContext(Protocol):
    """Capabilities available to story actions."""
    story_manager: StoryManager | None

    def get_state(self) -> StoryState: ...

    def set_state(self, state: StoryState) -> None: ...

    def dispatch(self, action: PreviewAction) -> None: ...


class UIActionContext(Protocol):
    """Capabilities available to UI actions."""

    def get_state(self) -> UIState: ...

    def get_story_state(self) -> StoryState: ...

    def set_state(self, state: UIState) -> None: ...

    def dispatch(self, action: PreviewAction) -> None: ...

    def rewind_story_to_last_choice(self) -> None: ...

    def can_rewind_story(self) -> bool: ...


# =============================================================================
# Base classes
# =============================================================================

class PreviewAction(ABC):
    """
    Base for all actions.

    replayable marks pure reducers: replay re-applies them through dispatch.
    Other actions have side effects (engine calls, nested dispatch) and are
    restored from their recorded snapshot instead.
    """
    type: ClassVar[ActionType]
    category: ClassVar[ActionCategory]
    replayable: ClassVar[bool] = False

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        action_type = cls.__dict__.get("type")
        if action_type is not None and action_type.category != cls.category:
            raise TypeError(
                f"{cls.__name__} declares {action_type.value} "
                f"but is a {cls.category.value} action"
            )

    @abstractmethod
    def apply(self, context) -> bool | None:
        """
        Apply this action through its domain context.

        Returning False means the action itself did nothing worth a history
        entry; entries of its nested dispatches are still recorded.
        """

    def resync(self, manager: StoryManager) -> None:
        """Re-drive the engine for this action without touching state."""


class StoryAction(PreviewAction):
    """Base for story domain actions."""
    category = ActionCategory.STORY

    @abstractmethod
    def apply(self, context: StoryActionContext) -> bool | None: ...


class StoryReducerAction(StoryAction):
    """
    Story action that is a pure state transition.

    Subclasses implement reduce(); it must return a new state and never
    mutate its input.
    """
    replayable = True

    @abstractmethod
    def reduce(self, state: StoryState) -> StoryState: ...

    def apply(self, context: StoryActionContext) -> None:
        context.set_state(self.reduce(context.get_state()))


class UIAction(PreviewAction):
    """Base for UI domain actions."""
    category = ActionCategory.UI

    @abstractmethod
    def apply(self, context: UIActionContext) -> None: ...


class UIReducerAction(UIAction):
    """UI action that is a pure state transition."""
    replayable = True

    @abstractmethod
    def reduce(self, state: UIState) -> UIState: ...

    def apply(self, context: UIActionContext) -> None:
        context.set_state(self.reduce(context.get_state()))
