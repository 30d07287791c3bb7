"""
UI Actions - Concrete actions for the UI domain.

UI actions either flip presentation flags or coordinate story actions
on behalf of the front-end (restart, rewind).
"""

from __future__ import annotations
from dataclasses import dataclass
import logging

from .action import ActionType, UIAction, UIActionContext, UIReducerAction
from .state import UIState
from .story_actions import StartStory

log = logging.getLogger(__name__)


@dataclass
class SetRewindEnabled(UIReducerAction):
    type = ActionType.SET_REWIND_ENABLED

    enabled: bool

    def reduce(self, state: UIState) -> UIState:
        return state._copy_with(rewind_available=self.enabled)


@dataclass
class ToggleLiveUpdate(UIReducerAction):
    """Enable or disable refreshing the preview when the document changes."""
    type = ActionType.TOGGLE_LIVE_UPDATE

    enabled: bool

    def reduce(self, state: UIState) -> UIState:
        return state._copy_with(live_update_enabled=self.enabled)


@dataclass
class RestartStory(UIAction):
    type = ActionType.RESTART_STORY

    def apply(self, context: UIActionContext) -> None:
        log.debug("Restarting story")
        context.dispatch(StartStory())


@dataclass
class RewindStory(UIAction):
    """Rewind the story to just before the last choice selection."""
    type = ActionType.REWIND_STORY

    def apply(self, context: UIActionContext) -> None:
        log.debug("Rewinding story to last choice")
        context.rewind_story_to_last_choice()
        context.dispatch(SetRewindEnabled(context.can_rewind_story()))
