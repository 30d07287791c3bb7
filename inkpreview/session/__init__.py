"""
Session Module - Manages ephemeral preview sessions.

A session represents one open preview:
- Created when a client opens a preview
- Holds a controller, its store and the bound engine
- Destroyed when the preview is closed or goes stale

Sessions are EPHEMERAL: nothing is persisted.
"""

from .controller import COMPILE_FAILED_MESSAGE, PreviewController, PreviewDocument
from .manager import PreviewSession, SessionManager, SessionState

__all__ = [
    "COMPILE_FAILED_MESSAGE",
    "PreviewController",
    "PreviewDocument",
    "PreviewSession",
    "SessionManager",
    "SessionState",
]
