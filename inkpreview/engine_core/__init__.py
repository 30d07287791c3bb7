"""
Engine Core - Preview state, actions and story progression.

The core is the runtime that:
1. Drives a narrative engine through its continue/choice loop
2. Records the resulting timeline in StoryState
3. Applies actions via the store, one domain at a time
4. Keeps per-domain history for replay, undo and rewind
"""

from .state import (
    Choice,
    ErrorInfo,
    ErrorSeverity,
    FunctionCallEvent,
    PreviewState,
    StoryEvent,
    StoryState,
    TextEvent,
    UIState,
)
from .errors import (
    CompilerUnavailableError,
    EngineUnavailableError,
    InvalidReplayIndexError,
    PreviewError,
    SessionNotFoundError,
    UnknownActionError,
)
from .error_parser import ParsedError, parse_error_message
from .engine import CompilationResult, CompiledStory, NarrativeEngine, StoryCompiler
from .story_manager import StoryManager, StoryProgressResult
from .action import ActionCategory, ActionType, PreviewAction, STORY_DEPENDENT_ACTIONS
from .story_actions import (
    AddErrors,
    AddStoryEvents,
    ClearErrors,
    ContinueStory,
    EndStory,
    InitializeStory,
    SelectChoice,
    SetCurrentChoices,
    StartStory,
)
from .ui_actions import RestartStory, RewindStory, SetRewindEnabled, ToggleLiveUpdate
from .history import HistoryEntry, HistoryLog
from .store import PreviewStore
from .messages import action_from_message

__all__ = [
    # State
    "Choice",
    "ErrorInfo",
    "ErrorSeverity",
    "FunctionCallEvent",
    "PreviewState",
    "StoryEvent",
    "StoryState",
    "TextEvent",
    "UIState",
    # Errors
    "CompilerUnavailableError",
    "EngineUnavailableError",
    "InvalidReplayIndexError",
    "PreviewError",
    "SessionNotFoundError",
    "UnknownActionError",
    "ParsedError",
    "parse_error_message",
    # Engine boundary
    "CompilationResult",
    "CompiledStory",
    "NarrativeEngine",
    "StoryCompiler",
    "StoryManager",
    "StoryProgressResult",
    # Actions
    "ActionCategory",
    "ActionType",
    "PreviewAction",
    "STORY_DEPENDENT_ACTIONS",
    "AddErrors",
    "AddStoryEvents",
    "ClearErrors",
    "ContinueStory",
    "EndStory",
    "InitializeStory",
    "SelectChoice",
    "SetCurrentChoices",
    "StartStory",
    "RestartStory",
    "RewindStory",
    "SetRewindEnabled",
    "ToggleLiveUpdate",
    # Store
    "HistoryEntry",
    "HistoryLog",
    "PreviewStore",
    "action_from_message",
]
