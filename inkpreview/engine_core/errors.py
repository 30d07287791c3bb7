"""
Errors - Exceptions raised for caller contract violations.

Runtime and content problems (engine failures, stale choices) are never
raised: they are recorded in StoryState.errors instead.
"""

from __future__ import annotations


class PreviewError(Exception):
    """Base class for preview engine errors."""


class EngineUnavailableError(PreviewError):
    """Raised when a story-dependent action is dispatched with no engine bound."""

    def __init__(self, action_type: str):
        self.action_type = action_type
        super().__init__(f"Cannot dispatch {action_type}: no story is available")


class InvalidReplayIndexError(PreviewError):
    """Raised when replay() is asked for an index outside the history."""

    def __init__(self, index: int, length: int):
        self.index = index
        self.length = length
        super().__init__(f"Invalid replay index: {index} (history length {length})")


class UnknownActionError(PreviewError):
    """Raised when an inbound message names an action type that does not exist."""

    def __init__(self, action_type: str):
        self.action_type = action_type
        super().__init__(f"Unknown action type: {action_type}")


class SessionNotFoundError(PreviewError):
    """Raised when a session ID does not exist or has ended."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")


class CompilerUnavailableError(PreviewError):
    """Raised when a document must be compiled but no compiler is configured."""

    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(f"No story compiler configured; cannot compile {uri}")
