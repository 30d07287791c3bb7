"""
FastAPI Application - REST API for preview front-ends.

Endpoints:
    POST   /api/v1/sessions                 Open a preview session
    GET    /api/v1/sessions                 List active sessions
    GET    /api/v1/sessions/{id}            Get session status
    DELETE /api/v1/sessions/{id}            End session
    PUT    /api/v1/sessions/{id}/document   Push a document version
    GET    /api/v1/sessions/{id}/state      Get preview state
    POST   /api/v1/sessions/{id}/actions    Dispatch an action
    POST   /api/v1/sessions/{id}/undo       Undo the last action of a domain
    POST   /api/v1/sessions/{id}/rewind     Rewind to the last choice
    POST   /api/v1/sessions/{id}/replay     Replay a domain's history
    GET    /api/v1/sessions/{id}/history    Get a domain's history
    WS     /api/v1/sessions/{id}/ws         Message protocol (ready, log, action)

All responses are JSON with explicit Pydantic schemas. Engine and story
problems never fail a request: they are part of the returned state.
"""

from typing import Annotated, Optional, Union
import json
import logging

from .. import __version__
from ..config import PreviewConfig

log = logging.getLogger(__name__)


def create_app(service=None, config: Optional[PreviewConfig] = None):
    """
    Create the FastAPI application.

    Args:
        service: Optional PreviewService instance (creates new if not provided)
        config: Optional configuration (read from the environment if not provided)

    Returns:
        FastAPI application instance
    """
    try:
        from fastapi import Body, FastAPI, Query, WebSocket, WebSocketDisconnect
        from fastapi.middleware.cors import CORSMiddleware
        from fastapi.responses import JSONResponse
    except ImportError:
        raise ImportError(
            "FastAPI not installed. Install with: pip install fastapi uvicorn"
        )

    from .service import PreviewService
    from .schemas import (
        # Request models
        ActionRequest,
        CreateSessionRequest,
        DocumentRequest,
        # Response models
        DocumentResponse,
        EndSessionResponse,
        ErrorResponse,
        HealthResponse,
        HistoryResponse,
        PreviewStateResponse,
        SessionListResponse,
        SessionResponse,
        # Enums
        ErrorCode,
        StateDomain,
    )
    from ..session import SessionManager

    config = config or PreviewConfig.from_env()

    app = FastAPI(
        title="Ink Preview API",
        description="""
Interactive preview of narrative scripts.

## Flow

1. `POST /sessions` opens a preview
2. `PUT /sessions/{id}/document` compiles a document and starts the story
3. `POST /sessions/{id}/actions` continues, selects choices, rewinds
4. `POST /sessions/{id}/undo` and `/rewind` walk back through history

Story errors are part of the state (`story.errors`), not request failures.

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Session does not exist |
| `STORY_UNAVAILABLE` | Action needs a compiled story |
| `INVALID_ACTION` | Unknown action type or bad payload |
| `INVALID_REPLAY_INDEX` | Replay index outside the history |
| `COMPILER_UNAVAILABLE` | No compiler configured |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or PreviewService(
        session_manager=SessionManager(compiler=config.load_compiler(), config=config),
    )
    app.state.service = api_service

    # =========================================================================
    # Error helpers
    # =========================================================================

    status_codes = {
        ErrorCode.SESSION_NOT_FOUND: 404,
        ErrorCode.STORY_UNAVAILABLE: 409,
        ErrorCode.INVALID_ACTION: 400,
        ErrorCode.INVALID_REPLAY_INDEX: 400,
        ErrorCode.COMPILER_UNAVAILABLE: 503,
        ErrorCode.VALIDATION_ERROR: 422,
        ErrorCode.INTERNAL_ERROR: 500,
    }

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_codes.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    def respond(response):
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    error_responses = {
        400: {"model": ErrorResponse, "description": "Invalid action or replay index"},
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "No story available"},
    }

    # =========================================================================
    # Session Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions",
        response_model=SessionResponse,
        tags=["Sessions"],
        summary="Open a preview session",
    )
    async def create_session(
        request: Annotated[Optional[CreateSessionRequest], Body()] = None,
    ) -> SessionResponse:
        """Open a new, empty preview session."""
        return api_service.create_session(request)

    @app.get(
        "/api/v1/sessions",
        response_model=SessionListResponse,
        tags=["Sessions"],
        summary="List active sessions",
    )
    async def list_sessions() -> SessionListResponse:
        """List all active session IDs."""
        sessions = api_service.list_sessions()
        return SessionListResponse(sessions=sessions, count=len(sessions))

    @app.get(
        "/api/v1/sessions/{session_id}",
        response_model=SessionResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Sessions"],
        summary="Get session status",
    )
    async def get_session(session_id: str) -> Union[SessionResponse, JSONResponse]:
        """Get the current status of a preview session."""
        return respond(api_service.get_session(session_id))

    @app.delete(
        "/api/v1/sessions/{session_id}",
        response_model=EndSessionResponse,
        tags=["Sessions"],
        summary="End a preview session",
    )
    async def end_session(session_id: str) -> EndSessionResponse:
        """End a session and release its engine."""
        return api_service.end_session(session_id)

    # =========================================================================
    # Preview Endpoints
    # =========================================================================

    @app.put(
        "/api/v1/sessions/{session_id}/document",
        response_model=DocumentResponse,
        responses={
            404: {"model": ErrorResponse, "description": "Session not found"},
            503: {"model": ErrorResponse, "description": "No compiler configured"},
        },
        tags=["Preview"],
        summary="Push a document version",
    )
    async def update_document(
        session_id: str,
        request: DocumentRequest,
    ) -> Union[DocumentResponse, JSONResponse]:
        """
        Compile a document and (re)start its story.

        The same `(uri, version)` as the current preview is ignored, and so
        is a new version of the same document while live update is off.
        """
        return respond(api_service.update_document(session_id, request))

    @app.get(
        "/api/v1/sessions/{session_id}/state",
        response_model=PreviewStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Preview"],
        summary="Get preview state",
    )
    async def get_state(session_id: str) -> Union[PreviewStateResponse, JSONResponse]:
        """Get the story and UI state of a session."""
        return respond(api_service.get_state(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/actions",
        response_model=PreviewStateResponse,
        responses=error_responses,
        tags=["Preview"],
        summary="Dispatch an action",
    )
    async def dispatch_action(
        session_id: str,
        request: ActionRequest,
    ) -> Union[PreviewStateResponse, JSONResponse]:
        """
        Dispatch a front-end action.

        Types: `START_STORY`, `RESTART_STORY`, `CONTINUE_STORY`,
        `SELECT_CHOICE` (`{"choiceIndex": n}`), `REWIND_STORY`, `CLEAR_ERRORS`,
        `SET_REWIND_ENABLED` and `TOGGLE_LIVE_UPDATE` (`{"enabled": bool}`).
        """
        return respond(api_service.dispatch_action(session_id, request))

    # =========================================================================
    # History Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/sessions/{session_id}/undo",
        response_model=PreviewStateResponse,
        responses=error_responses,
        tags=["History"],
        summary="Undo the last action of a domain",
    )
    async def undo(
        session_id: str,
        domain: Annotated[StateDomain, Query(description="story or ui")] = StateDomain.STORY,
    ) -> Union[PreviewStateResponse, JSONResponse]:
        """Replay the domain's history without its last entry."""
        return respond(api_service.undo(session_id, domain))

    @app.post(
        "/api/v1/sessions/{session_id}/rewind",
        response_model=PreviewStateResponse,
        responses=error_responses,
        tags=["History"],
        summary="Rewind to the last choice",
    )
    async def rewind(session_id: str) -> Union[PreviewStateResponse, JSONResponse]:
        """Restore the story as it was just before the last choice was selected."""
        return respond(api_service.rewind(session_id))

    @app.post(
        "/api/v1/sessions/{session_id}/replay",
        response_model=PreviewStateResponse,
        responses=error_responses,
        tags=["History"],
        summary="Replay a domain's history",
    )
    async def replay(
        session_id: str,
        to_index: Annotated[Optional[int], Query(description="Replay entries before this index")] = None,
        domain: Annotated[StateDomain, Query(description="story or ui")] = StateDomain.STORY,
    ) -> Union[PreviewStateResponse, JSONResponse]:
        """Rebuild a domain from its history up to (excluding) `to_index`."""
        return respond(api_service.replay(session_id, to_index, domain))

    @app.get(
        "/api/v1/sessions/{session_id}/history",
        response_model=HistoryResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["History"],
        summary="Get a domain's history",
    )
    async def get_history(
        session_id: str,
        domain: Annotated[StateDomain, Query(description="story or ui")] = StateDomain.STORY,
    ) -> Union[HistoryResponse, JSONResponse]:
        """List the recorded actions of a domain, oldest first."""
        return respond(api_service.get_history(session_id, domain))

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/sessions/{session_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, session_id: str):
        """
        Message protocol over a WebSocket.

        Messages from client:
        - {"command": "ready"}
        - {"command": "log", "payload": {"message": ...}}
        - {"command": "action", "payload": {"type": ..., "payload": {...}}}
        - {"type": "ping"}: Keep-alive

        Messages from server:
        - state_update: Preview state after each message
        - error: Invalid message or rejected action
        - pong
        """
        await websocket.accept()

        session = api_service.session_manager.get_session(session_id)
        if session is None:
            await websocket.send_json({
                "type": "error",
                "payload": {"message": "Session not found", "error_code": ErrorCode.SESSION_NOT_FOUND.value},
            })
            await websocket.close()
            return

        try:
            await websocket.send_json({
                "type": "state_update",
                "payload": api_service.get_state(session_id).model_dump(mode="json"),
            })

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if not isinstance(message, dict):
                        raise ValueError("message must be an object")
                except ValueError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid message", "error_code": ErrorCode.VALIDATION_ERROR.value},
                    })
                    continue

                if message.get("type") == "ping":
                    await websocket.send_json({"type": "pong"})
                    continue

                response = api_service.handle_message(session_id, message)
                if isinstance(response, ErrorResponse):
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": response.error, "error_code": response.error_code.value},
                    })
                else:
                    await websocket.send_json({
                        "type": "state_update",
                        "payload": response.model_dump(mode="json"),
                    })
        except WebSocketDisconnect:
            log.debug("WebSocket for session %s disconnected", session_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="inkpreview",
            version=__version__,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Ink Preview API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn inkpreview.api.app:app
app = None
try:
    app = create_app()
except (ImportError, ValueError, AttributeError) as e:
    # FastAPI not installed, or INKPREVIEW_COMPILER does not name a factory
    log.warning("Module-level app not created: %s", e)
