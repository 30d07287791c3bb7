"""
API Module - HTTP interface for preview front-ends.

Exposes preview sessions via REST API. A front-end:
1. Opens a session
2. Pushes document versions to compile and start
3. Dispatches actions (continue, choose, rewind, toggles)
4. Reads state and history

All state is session-scoped and in-memory.
"""

from .schemas import (
    # Requests
    ActionRequest,
    CreateSessionRequest,
    DocumentRequest,
    # Responses
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
    SessionStatus,
    StateDomain,
)
from .service import PreviewService

__all__ = [
    # Requests
    "ActionRequest",
    "CreateSessionRequest",
    "DocumentRequest",
    # Responses
    "DocumentResponse",
    "EndSessionResponse",
    "ErrorResponse",
    "HealthResponse",
    "HistoryResponse",
    "PreviewStateResponse",
    "SessionListResponse",
    "SessionResponse",
    # Enums
    "ErrorCode",
    "SessionStatus",
    "StateDomain",
    # Service
    "PreviewService",
]
