"""
API Service - Business logic layer between the API and the preview.

The service:
1. Manages sessions
2. Pushes documents to session controllers
3. Dispatches front-end actions and history operations
4. Converts preview state to response schemas

Caller errors come back as ErrorResponse objects, never as exceptions.
This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
import logging

from .schemas import (
    # Requests
    ActionRequest,
    CreateSessionRequest,
    DocumentRequest,
    # Responses
    DocumentResponse,
    EndSessionResponse,
    ErrorResponse,
    HistoryEntryInfo,
    HistoryResponse,
    PreviewStateResponse,
    SessionResponse,
    # State
    ChoiceInfo,
    StoryErrorInfo,
    StoryEventInfo,
    StoryStateResponse,
    UIStateResponse,
    # Enums
    ErrorCode,
    SessionStatus,
    StateDomain,
)
from ..engine_core.action import ActionCategory
from ..engine_core.errors import (
    CompilerUnavailableError,
    EngineUnavailableError,
    InvalidReplayIndexError,
    UnknownActionError,
)
from ..engine_core.messages import MessageCommand
from ..engine_core.state import FunctionCallEvent, PreviewState, StoryEvent, StoryState
from ..session import PreviewDocument, PreviewSession, SessionManager

log = logging.getLogger(__name__)


def session_not_found(session_id: str) -> ErrorResponse:
    return ErrorResponse(
        error="Session not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
        details={"session_id": session_id},
    )


@dataclass
class PreviewService:
    """
    Main API service for preview front-ends.

    Usage:
        service = PreviewService(SessionManager(compiler=my_compiler))

        session = service.create_session()
        service.update_document(session.session_id, DocumentRequest(...))
        state = service.dispatch_action(session.session_id, ActionRequest(type="SELECT_CHOICE",
                                                                           payload={"choiceIndex": 0}))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # =========================================================================
    # Sessions
    # =========================================================================

    def create_session(self, request: CreateSessionRequest | None = None) -> SessionResponse:
        session = self.session_manager.create_session(
            metadata=request.metadata if request else None,
        )
        return self._session_to_response(session)

    def get_session(self, session_id: str) -> SessionResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        return self._session_to_response(session)

    def end_session(self, session_id: str) -> EndSessionResponse:
        success = self.session_manager.end_session(session_id)
        return EndSessionResponse(success=success, session_id=session_id)

    def list_sessions(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    def cleanup_stale_sessions(self, max_age_seconds: int | None = None) -> int:
        return self.session_manager.cleanup_stale_sessions(max_age_seconds)

    # =========================================================================
    # Preview operations
    # =========================================================================

    def update_document(
        self,
        session_id: str,
        request: DocumentRequest,
    ) -> DocumentResponse | ErrorResponse:
        """
        Push a document version to a session.

        Compilation problems are reported in the returned state, not as an
        error response.
        """
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)

        document = PreviewDocument(uri=request.uri, version=request.version, source=request.source)
        try:
            started = session.controller.preview(document)
        except CompilerUnavailableError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.COMPILER_UNAVAILABLE)

        session.touch()
        return DocumentResponse(
            session_id=session_id,
            started=started,
            title=session.controller.title,
            state=self._state_to_response(session_id, session.controller.store.get_state()),
        )

    def get_state(self, session_id: str) -> PreviewStateResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)
        return self._state_to_response(session_id, session.controller.store.get_state())

    def dispatch_action(
        self,
        session_id: str,
        request: ActionRequest,
    ) -> PreviewStateResponse | ErrorResponse:
        """Dispatch a front-end action message."""
        return self.handle_message(session_id, {
            "command": MessageCommand.ACTION,
            "payload": {"type": request.type, "payload": request.payload},
        })

    def handle_message(
        self,
        session_id: str,
        message: Mapping[str, Any],
    ) -> PreviewStateResponse | ErrorResponse:
        """Handle a raw front-end message ({command, payload})."""
        return self._run(session_id, lambda session: session.controller.handle_message(message))

    def undo(
        self,
        session_id: str,
        domain: StateDomain = StateDomain.STORY,
    ) -> PreviewStateResponse | ErrorResponse:
        """Undo the last recorded action of a domain."""
        return self._run(
            session_id,
            lambda session: session.controller.store.undo(ActionCategory(domain.value)),
        )

    def rewind(self, session_id: str) -> PreviewStateResponse | ErrorResponse:
        """Rewind the story to just before the last choice."""
        return self._run(session_id, lambda session: session.controller.rewind())

    def replay(
        self,
        session_id: str,
        to_index: int | None = None,
        domain: StateDomain = StateDomain.STORY,
    ) -> PreviewStateResponse | ErrorResponse:
        """Replay a domain's history up to (excluding) to_index."""
        return self._run(
            session_id,
            lambda session: session.controller.store.replay(to_index, ActionCategory(domain.value)),
        )

    def get_history(
        self,
        session_id: str,
        domain: StateDomain = StateDomain.STORY,
    ) -> HistoryResponse | ErrorResponse:
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)

        store = session.controller.store
        history = store.get_story_history() if domain == StateDomain.STORY else store.get_ui_history()
        entries = [
            HistoryEntryInfo(
                index=i,
                action_type=entry.action_type,
                timestamp=entry.timestamp,
                nested_count=entry.nested_count,
            )
            for i, entry in enumerate(history)
        ]
        return HistoryResponse(session_id=session_id, domain=domain, entries=entries, count=len(entries))

    def _run(
        self,
        session_id: str,
        operation: Callable[[PreviewSession], PreviewState],
    ) -> PreviewStateResponse | ErrorResponse:
        """Run a state-changing operation, mapping caller errors to error responses."""
        session = self.session_manager.get_session(session_id)
        if not session:
            return session_not_found(session_id)

        try:
            state = operation(session)
        except EngineUnavailableError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.STORY_UNAVAILABLE,
                details={"action_type": e.action_type},
            )
        except UnknownActionError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.INVALID_ACTION)
        except InvalidReplayIndexError as e:
            return ErrorResponse(
                error=str(e),
                error_code=ErrorCode.INVALID_REPLAY_INDEX,
                details={"index": e.index, "length": e.length},
            )

        session.touch()
        return self._state_to_response(session_id, state)

    # =========================================================================
    # Conversion Helpers
    # =========================================================================

    def _session_to_response(self, session: PreviewSession) -> SessionResponse:
        controller = session.controller
        document = controller.document
        return SessionResponse(
            session_id=session.session_id,
            status=SessionStatus(session.state.value),
            title=controller.title,
            document_uri=document.uri if document else None,
            document_version=document.version if document else None,
            has_story=controller.has_story,
            created_at=session.created_at,
        )

    def _state_to_response(self, session_id: str, state: PreviewState) -> PreviewStateResponse:
        return PreviewStateResponse(
            session_id=session_id,
            story=self._story_to_response(state.story),
            ui=UIStateResponse.model_validate(state.ui),
        )

    def _story_to_response(self, story: StoryState) -> StoryStateResponse:
        return StoryStateResponse(
            events=[self._event_to_info(event) for event in story.events],
            current_choices=[ChoiceInfo.model_validate(choice) for choice in story.current_choices],
            errors=[
                StoryErrorInfo(message=error.message, severity=error.severity.value)
                for error in story.errors
            ],
            is_ended=story.is_ended,
            is_start=story.is_start,
            last_choice_index=story.last_choice_index,
        )

    def _event_to_info(self, event: StoryEvent) -> StoryEventInfo:
        if isinstance(event, FunctionCallEvent):
            return StoryEventInfo(
                type=event.event_type,
                function_name=event.function_name,
                args=[_jsonable(arg) for arg in event.args],
                result=_jsonable(event.result),
                is_current=event.is_current,
            )
        return StoryEventInfo(
            type=event.event_type,
            text=event.text,
            tags=list(event.tags),
            is_current=event.is_current,
        )


def _jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return repr(value)
