"""
Tests for API Pydantic schemas.

Validates that:
- Request/response models serialize correctly
- Error codes are properly structured
- OpenAPI schema carries every response model
"""

import pytest
from pydantic import ValidationError


class TestPydanticSchemas:
    """Tests for Pydantic schema validation."""

    def test_preview_state_response_schema(self):
        """PreviewStateResponse mirrors the preview state."""
        from inkpreview.api.schemas import (
            ChoiceInfo,
            PreviewStateResponse,
            StoryEventInfo,
            StoryStateResponse,
            UIStateResponse,
        )

        response = PreviewStateResponse(
            session_id="session-123",
            story=StoryStateResponse(
                events=[StoryEventInfo(type="text", text="Hello.", is_current=True)],
                current_choices=[ChoiceInfo(index=0, text="Open it")],
                last_choice_index=1,
            ),
            ui=UIStateResponse(rewind_available=True),
        )

        data = response.model_dump()
        assert data["story"]["events"][0]["text"] == "Hello."
        assert data["story"]["current_choices"][0]["index"] == 0
        assert data["ui"] == {"rewind_available": True, "live_update_enabled": True}
        assert data["api_version"] == "v1"

    def test_choice_info_from_attributes(self):
        """ChoiceInfo reads engine choices directly."""
        from inkpreview.api.schemas import ChoiceInfo
        from inkpreview.engine_core.state import Choice

        info = ChoiceInfo.model_validate(Choice(index=2, text="Leave", tags=["exit"]))

        assert (info.index, info.text, info.tags) == (2, "Leave", ["exit"])

    def test_error_response_schema(self):
        """ErrorResponse serializes its code as a string."""
        from inkpreview.api.schemas import ErrorCode, ErrorResponse

        response = ErrorResponse(
            error="Session not found",
            error_code=ErrorCode.SESSION_NOT_FOUND,
            details={"session_id": "abc"},
        )

        data = response.model_dump(mode="json")
        assert data["error_code"] == "SESSION_NOT_FOUND"
        assert data["details"] == {"session_id": "abc"}

    def test_document_request_validation(self):
        """Document versions are non-negative."""
        from inkpreview.api.schemas import DocumentRequest

        with pytest.raises(ValidationError):
            DocumentRequest(uri="file:///a.ink", version=-1)

        request = DocumentRequest(uri="file:///a.ink", version=0)
        assert request.source == ""

    def test_action_request_defaults(self):
        """Actions without arguments have an empty payload."""
        from inkpreview.api.schemas import ActionRequest

        request = ActionRequest(type="START_STORY")

        assert request.payload == {}

        with pytest.raises(ValidationError):
            ActionRequest()


class TestErrorCodes:
    """Tests for error code coverage."""

    def test_all_error_codes_defined(self):
        """All required error codes are defined."""
        from inkpreview.api.schemas import ErrorCode

        required_codes = [
            "SESSION_NOT_FOUND",
            "STORY_UNAVAILABLE",
            "INVALID_ACTION",
            "INVALID_REPLAY_INDEX",
            "COMPILER_UNAVAILABLE",
        ]

        for code in required_codes:
            assert hasattr(ErrorCode, code), f"Missing error code: {code}"
            assert ErrorCode[code].value == code

    def test_error_code_values_are_strings(self):
        """Error codes are string enums for JSON serialization."""
        from inkpreview.api.schemas import ErrorCode

        for code in ErrorCode:
            assert isinstance(code.value, str)
            assert code.value == code.value.upper()


class TestOpenAPISchema:
    """Tests for OpenAPI schema generation."""

    @pytest.fixture
    def schema(self):
        from fastapi.openapi.utils import get_openapi
        from inkpreview.api.app import create_app
        from inkpreview.config import PreviewConfig

        app = create_app(config=PreviewConfig())
        return get_openapi(title=app.title, version=app.version, routes=app.routes)

    def test_openapi_schema_generates(self, schema):
        """OpenAPI schema generates without errors."""
        assert "paths" in schema
        assert "schemas" in schema["components"]

    def test_response_models_in_schema(self, schema):
        """Response models appear in OpenAPI schema."""
        schemas = schema["components"]["schemas"]

        required_schemas = [
            "SessionResponse",
            "DocumentResponse",
            "PreviewStateResponse",
            "HistoryResponse",
            "ErrorResponse",
        ]

        for name in required_schemas:
            assert name in schemas, f"Missing schema: {name}"

    def test_endpoints_have_response_models(self, schema):
        """All main endpoints specify response models."""
        paths = schema["paths"]

        assert "200" in paths["/api/v1/sessions"]["post"]["responses"]
        assert "200" in paths["/api/v1/sessions/{session_id}/state"]["get"]["responses"]
        assert "404" in paths["/api/v1/sessions/{session_id}/state"]["get"]["responses"]
        assert "409" in paths["/api/v1/sessions/{session_id}/actions"]["post"]["responses"]
        assert "503" in paths["/api/v1/sessions/{session_id}/document"]["put"]["responses"]
