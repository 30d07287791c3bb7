"""
Story Actions - Concrete actions for the story domain.

Reducers (pure):
    AddStoryEvents, SetCurrentChoices, AddErrors, ClearErrors, EndStory

Composite (drive the engine, then dispatch reducers):
    StartStory, InitializeStory, ContinueStory, SelectChoice
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
import logging

from .action import ActionType, StoryAction, StoryActionContext, StoryReducerAction
from .state import Choice, ErrorInfo, StoryEvent, StoryState, mark_current_events

if TYPE_CHECKING:
    from .story_manager import StoryManager, StoryProgressResult

log = logging.getLogger(__name__)


# =============================================================================
# Reducers
# =============================================================================

@dataclass
class AddStoryEvents(StoryReducerAction):
    """Append events and recompute which ones are current."""
    type = ActionType.ADD_STORY_EVENTS

    events: list[StoryEvent] = field(default_factory=list)

    def reduce(self, state: StoryState) -> StoryState:
        events = mark_current_events(
            [*state.events, *self.events],
            state.last_choice_index,
        )
        return state._copy_with(events=events)


@dataclass
class SetCurrentChoices(StoryReducerAction):
    """Publish a new choice set; everything before it becomes history."""
    type = ActionType.SET_CURRENT_CHOICES

    choices: list[Choice] = field(default_factory=list)

    def reduce(self, state: StoryState) -> StoryState:
        last_choice_index = len(state.events)
        return state._copy_with(
            current_choices=list(self.choices),
            last_choice_index=last_choice_index,
            events=mark_current_events(state.events, last_choice_index),
        )


@dataclass
class AddErrors(StoryReducerAction):
    type = ActionType.ADD_ERRORS

    errors: list[ErrorInfo] = field(default_factory=list)

    def reduce(self, state: StoryState) -> StoryState:
        return state._copy_with(errors=[*state.errors, *self.errors])


@dataclass
class ClearErrors(StoryReducerAction):
    type = ActionType.CLEAR_ERRORS

    def reduce(self, state: StoryState) -> StoryState:
        return state._copy_with(errors=[])


@dataclass
class EndStory(StoryReducerAction):
    type = ActionType.END_STORY

    def reduce(self, state: StoryState) -> StoryState:
        return state._copy_with(is_ended=True, is_start=False)


# =============================================================================
# Composite actions
# =============================================================================

def dispatch_progress(context: StoryActionContext, result: StoryProgressResult) -> None:
    """Dispatch the reducers that record a continue/select result."""
    if result.errors:
        context.dispatch(AddErrors(result.errors))
    if result.events:
        context.dispatch(AddStoryEvents(result.events))
    context.dispatch(SetCurrentChoices(result.choices))
    if result.is_ended:
        context.dispatch(EndStory())


@dataclass
class StartStory(StoryAction):
    """
    Start (or restart) the story from the top.

    Clears the timeline, disables rewind, then resets and continues the
    engine when one is bound.
    """
    type = ActionType.START_STORY

    def reduce(self, state: StoryState) -> StoryState:
        return StoryState(is_start=True, last_choice_index=0)

    def apply(self, context: StoryActionContext) -> None:
        from .ui_actions import SetRewindEnabled

        context.set_state(self.reduce(context.get_state()))
        context.dispatch(SetRewindEnabled(False))

        manager = context.story_manager
        if manager is None:
            log.debug("Story started without an engine")
            return

        manager.reset()
        dispatch_progress(context, manager.continue_story())

    def resync(self, manager: StoryManager) -> None:
        manager.reset()
        manager.continue_story()


@dataclass
class InitializeStory(StoryAction):
    """Reset the engine. Leaves state untouched."""
    type = ActionType.INITIALIZE_STORY

    def apply(self, context: StoryActionContext) -> None:
        log.debug("Initializing story")
        context.story_manager.reset()


@dataclass
class ContinueStory(StoryAction):
    type = ActionType.CONTINUE_STORY

    def apply(self, context: StoryActionContext) -> None:
        dispatch_progress(context, context.story_manager.continue_story())

    def resync(self, manager: StoryManager) -> None:
        manager.continue_story()


@dataclass
class SelectChoice(StoryAction):
    """Select a choice, continue the story and record the outcome."""
    type = ActionType.SELECT_CHOICE

    choice_index: int

    def reduce(self, state: StoryState) -> StoryState:
        return state._copy_with(is_start=False)

    def apply(self, context: StoryActionContext) -> bool | None:
        from .ui_actions import SetRewindEnabled

        result = context.story_manager.select_choice(self.choice_index)
        if not result.choice_available:
            # Stale index: the note is recorded, no SELECT_CHOICE entry
            context.dispatch(AddErrors(result.errors))
            return False

        dispatch_progress(context, result)
        context.set_state(self.reduce(context.get_state()))
        context.dispatch(SetRewindEnabled(True))

        log.debug(
            "Choice %d selected: %d events, %d choices, ended: %s",
            self.choice_index, len(result.events), len(result.choices), result.is_ended,
        )

    def resync(self, manager: StoryManager) -> None:
        manager.select_choice(self.choice_index)
