"""
Session Manager - Creates and manages preview sessions.

A session is one open preview: a controller with its store, bound to
whatever document was last pushed to it.

PERSISTENCE RULES:
- Sessions are in-memory only
- History does not survive the process
- Ending a session disposes its controller
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging
import time
import uuid

from ..config import PreviewConfig
from ..engine_core.engine import StoryCompiler
from ..engine_core.errors import SessionNotFoundError
from .controller import PreviewController

log = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a preview session."""
    CREATED = "created"  # No document yet
    ACTIVE = "active"  # A document has been previewed
    ENDED = "ended"


@dataclass
class PreviewSession:
    """An ephemeral preview session."""
    session_id: str
    created_at: float
    controller: PreviewController

    state: SessionState = SessionState.CREATED
    last_activity: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.last_activity:
            self.last_activity = self.created_at

    def is_active(self) -> bool:
        """Check if session is still usable."""
        return self.state != SessionState.ENDED

    def touch(self) -> None:
        self.last_activity = time.time()
        if self.state == SessionState.CREATED and self.controller.document is not None:
            self.state = SessionState.ACTIVE


class SessionManager:
    """
    Manages preview sessions.

    Every session gets its own controller built from the shared compiler
    and configuration.
    """

    def __init__(
        self,
        compiler: StoryCompiler | None = None,
        config: PreviewConfig | None = None,
    ):
        self.compiler = compiler
        self.config = config or PreviewConfig()
        self._sessions: dict[str, PreviewSession] = {}

    def create_session(self, metadata: dict[str, Any] | None = None) -> PreviewSession:
        """Create a new, empty preview session."""
        session = PreviewSession(
            session_id=str(uuid.uuid4()),
            created_at=time.time(),
            controller=PreviewController(compiler=self.compiler, config=self.config),
            metadata=dict(metadata or {}),
        )
        self._sessions[session.session_id] = session
        log.info("Created session %s", session.session_id)
        return session

    def get_session(self, session_id: str) -> PreviewSession | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> PreviewSession:
        """Get a session by ID or raise SessionNotFoundError."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def end_session(self, session_id: str) -> bool:
        """
        End a session and dispose its controller.

        Returns False if the session did not exist.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False

        session.state = SessionState.ENDED
        session.controller.dispose()
        log.info("Ended session %s", session_id)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int | None = None) -> int:
        """
        End sessions idle for longer than max_age_seconds.

        Defaults to the configured session max age. Returns the number of
        sessions ended.
        """
        if max_age_seconds is None:
            max_age_seconds = self.config.session_max_age

        now = time.time()
        stale = [
            sid for sid, session in self._sessions.items()
            if now - session.last_activity > max_age_seconds
        ]
        for session_id in stale:
            self.end_session(session_id)

        if stale:
            log.info("Cleaned up %d stale sessions", len(stale))
        return len(stale)
