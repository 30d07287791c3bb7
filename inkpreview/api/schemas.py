"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between preview front-ends and the
engine. State responses mirror PreviewState field for field.

Error Codes:
- SESSION_NOT_FOUND: Session does not exist or has ended
- STORY_UNAVAILABLE: Action needs a story but none is compiled
- INVALID_ACTION: Action type or payload not understood
- INVALID_REPLAY_INDEX: Replay index outside the history
- COMPILER_UNAVAILABLE: No compiler configured for documents
"""

from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field


API_VERSION = "v1"


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    CREATED = "created"
    ACTIVE = "active"
    ENDED = "ended"


class StateDomain(str, Enum):
    """State domains with their own history."""
    STORY = "story"
    UI = "ui"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    STORY_UNAVAILABLE = "STORY_UNAVAILABLE"
    INVALID_ACTION = "INVALID_ACTION"
    INVALID_REPLAY_INDEX = "INVALID_REPLAY_INDEX"
    COMPILER_UNAVAILABLE = "COMPILER_UNAVAILABLE"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# State Models
# =============================================================================

class StoryEventInfo(BaseModel):
    """A story event: a line of text or an external function call."""
    type: str = Field(description="text or function")
    text: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    function_name: Optional[str] = None
    args: list[Any] = Field(default_factory=list)
    result: Optional[Any] = None
    is_current: bool = False


class ChoiceInfo(BaseModel):
    """A choice offered at the current choice point."""
    index: int = Field(description="Engine-native selection index")
    text: str
    tags: list[str] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class StoryErrorInfo(BaseModel):
    """An error, warning or note recorded while running the story."""
    message: str
    severity: str = Field(description="error, warning or info")


class StoryStateResponse(BaseModel):
    """Story domain state."""
    events: list[StoryEventInfo] = Field(default_factory=list)
    current_choices: list[ChoiceInfo] = Field(default_factory=list)
    errors: list[StoryErrorInfo] = Field(default_factory=list)
    is_ended: bool = False
    is_start: bool = False
    last_choice_index: int = 0


class UIStateResponse(BaseModel):
    """UI domain state."""
    rewind_available: bool = False
    live_update_enabled: bool = True

    model_config = {"from_attributes": True}


class PreviewStateResponse(BaseModel):
    """Complete preview state for display."""
    session_id: str
    story: StoryStateResponse
    ui: UIStateResponse
    api_version: str = API_VERSION


# =============================================================================
# Request Models
# =============================================================================

class CreateSessionRequest(BaseModel):
    """Request to open a new preview session."""
    metadata: dict[str, Any] = Field(default_factory=dict, description="Opaque client data")


class DocumentRequest(BaseModel):
    """A script document to preview."""
    uri: str = Field(..., description="Document URI, used for the title and change detection")
    version: int = Field(..., ge=0, description="Document version; same version is ignored")
    source: str = Field("", description="Script source to compile")


class ActionRequest(BaseModel):
    """An action message from the front-end."""
    type: str = Field(..., description="Action type, e.g. START_STORY or SELECT_CHOICE")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Action arguments, e.g. {\"choiceIndex\": 0}",
    )


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field(API_VERSION, description="API version")


class SessionResponse(BaseModel):
    """Response containing session information."""
    session_id: str
    status: SessionStatus
    title: str
    document_uri: Optional[str] = None
    document_version: Optional[int] = None
    has_story: bool = False
    created_at: float = 0.0
    api_version: str = API_VERSION


class DocumentResponse(BaseModel):
    """Response after pushing a document."""
    session_id: str
    started: bool = Field(description="True if the story was (re)started from this document")
    title: str
    state: PreviewStateResponse
    api_version: str = API_VERSION


class HistoryEntryInfo(BaseModel):
    """One recorded action in a domain history."""
    index: int
    action_type: str
    timestamp: float
    nested_count: int = Field(0, description="Entries recorded by this action's nested dispatches")


class HistoryResponse(BaseModel):
    """Response listing a domain's history."""
    session_id: str
    domain: StateDomain
    entries: list[HistoryEntryInfo] = Field(default_factory=list)
    count: int = 0
    api_version: str = API_VERSION


class SessionListResponse(BaseModel):
    """Response listing active sessions."""
    sessions: list[str]
    count: int


class EndSessionResponse(BaseModel):
    """Response after ending a session."""
    success: bool
    session_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
