"""
Messages - Maps inbound front-end messages onto actions.

Front-ends send {command, payload} messages:
    ready                       The view has loaded and wants a story
    log      {message}          Diagnostic text from the view
    action   {type, payload}    Dispatch an action

Only the action types below can be sent from outside; reducers that
record engine output are internal.
"""

from __future__ import annotations
from typing import Any, Callable, Mapping

from .action import ActionType, PreviewAction
from .errors import UnknownActionError
from .story_actions import ClearErrors, ContinueStory, SelectChoice, StartStory
from .ui_actions import RestartStory, RewindStory, SetRewindEnabled, ToggleLiveUpdate


class MessageCommand:
    READY = "ready"
    LOG = "log"
    ACTION = "action"


_ACTION_BUILDERS: dict[ActionType, Callable[[Mapping[str, Any]], PreviewAction]] = {
    ActionType.START_STORY: lambda payload: StartStory(),
    ActionType.RESTART_STORY: lambda payload: RestartStory(),
    ActionType.CONTINUE_STORY: lambda payload: ContinueStory(),
    ActionType.SELECT_CHOICE: lambda payload: SelectChoice(int(payload["choiceIndex"])),
    ActionType.REWIND_STORY: lambda payload: RewindStory(),
    ActionType.CLEAR_ERRORS: lambda payload: ClearErrors(),
    ActionType.SET_REWIND_ENABLED: lambda payload: SetRewindEnabled(bool(payload["enabled"])),
    ActionType.TOGGLE_LIVE_UPDATE: lambda payload: ToggleLiveUpdate(bool(payload["enabled"])),
}

MESSAGE_ACTION_TYPES: frozenset[ActionType] = frozenset(_ACTION_BUILDERS)


def action_from_message(action_type: str, payload: Mapping[str, Any] | None = None) -> PreviewAction:
    """
    Build the action for an inbound action message.

    Raises UnknownActionError for types outside the message protocol and
    for payloads missing a required field.
    """
    try:
        builder = _ACTION_BUILDERS[ActionType(action_type)]
    except (ValueError, KeyError):
        raise UnknownActionError(action_type)

    try:
        return builder(payload or {})
    except (KeyError, TypeError, ValueError) as e:
        raise UnknownActionError(f"{action_type} (bad payload: {e})") from e
