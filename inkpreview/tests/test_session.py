"""
Tests for the session layer.

Tests:
- Preview controller document lifecycle
- Front-end message handling
- Session manager lifecycle
"""

import logging
import time

import pytest

from ..config import PreviewConfig
from ..engine_core.errors import CompilerUnavailableError, EngineUnavailableError, UnknownActionError
from ..engine_core.state import ErrorSeverity, FunctionCallEvent
from ..session import (
    COMPILE_FAILED_MESSAGE,
    PreviewController,
    PreviewDocument,
    SessionManager,
    SessionState,
)
from .conftest import Call, FakeCompiler

URI = "file:///stories/hall.ink"


def doc(version=1, source="story", uri=URI):
    return PreviewDocument(uri=uri, version=version, source=source)


def action(action_type, payload=None):
    return {"command": "action", "payload": {"type": action_type, "payload": payload or {}}}


class TestPreviewDocument:
    """Document lifecycle."""

    def test_preview_compiles_and_starts(self, controller, compiler):
        started = controller.preview(doc())

        state = controller.store.get_state()
        assert started is True
        assert compiler.compiled == [(URI, "story")]
        assert [e.text for e in state.story.events] == ["Hello.", "A door."]
        assert state.story.is_start is True
        assert controller.has_story

    def test_initialize_precedes_start(self, controller, compiler):
        controller.preview(doc())

        # InitializeStory and StartStory each reset the engine once
        assert compiler.engines[0].reset_calls == 2

    def test_same_version_is_ignored(self, controller, compiler):
        controller.preview(doc())

        assert controller.preview(doc()) is False
        assert len(compiler.compiled) == 1

    def test_new_version_recompiles(self, controller, compiler):
        controller.preview(doc())

        assert controller.preview(doc(version=2)) is True
        assert len(compiler.compiled) == 2
        assert controller.store.story_manager.engine is compiler.engines[1]

    def test_live_update_disabled_ignores_new_version(self, controller, compiler):
        controller.preview(doc())
        controller.handle_message(action("TOGGLE_LIVE_UPDATE", {"enabled": False}))

        assert controller.preview(doc(version=2)) is False
        assert len(compiler.compiled) == 1
        assert controller.document.version == 1

    def test_live_update_disabled_still_opens_other_document(self, controller, compiler):
        controller.preview(doc())
        controller.handle_message(action("TOGGLE_LIVE_UPDATE", {"enabled": False}))

        assert controller.preview(doc(uri="file:///stories/cellar.ink")) is True
        assert controller.title == "cellar.ink (Preview)"

    def test_compile_failure(self, controller):
        controller.preview(doc())

        started = controller.preview(doc(version=2, source="ERROR here"))

        state = controller.store.get_state()
        assert started is False
        assert controller.has_story is False
        assert state.story.events == []
        assert [(e.message, e.severity) for e in state.story.errors] == [
            ("line 3: unexpected token", ErrorSeverity.ERROR),
            (COMPILE_FAILED_MESSAGE, ErrorSeverity.ERROR),
        ]

    def test_actions_after_compile_failure_need_story(self, controller):
        controller.preview(doc(source="ERROR"))

        with pytest.raises(EngineUnavailableError):
            controller.handle_message(action("CONTINUE_STORY"))

    def test_compiler_exception_is_a_compile_failure(self, controller, compiler, caplog):
        def explode(uri, source):
            raise RuntimeError("Error: compiler crashed")

        compiler.compile = explode

        with caplog.at_level(logging.ERROR):
            started = controller.preview(doc())

        assert started is False
        assert "compiler crashed" in [e.message for e in controller.store.get_story_state().errors]

    def test_no_compiler(self):
        controller = PreviewController()

        with pytest.raises(CompilerUnavailableError):
            controller.preview(doc())

    def test_no_compiler_raises_every_time(self):
        controller = PreviewController()

        for _ in range(2):
            with pytest.raises(CompilerUnavailableError):
                controller.preview(doc())

        assert controller.document is None
        assert controller.title == "Story (Preview)"

    def test_precompiled_story_skips_compiler(self, controller, compiler):
        other = FakeCompiler().compile("x", "story").story

        assert controller.preview(doc(), compiled=other) is True
        assert compiler.compiled == []

    def test_title(self, controller):
        assert controller.title == "Story (Preview)"

        controller.preview(doc())

        assert controller.title == "hall.ink (Preview)"


class TestExternalFunctions:
    """External functions bound at preview time."""

    STORY = {"start": {"lines": [Call("greet", ["Ann"], "{result}")], "choices": []}}

    def test_function_call_event_recorded(self):
        compiler = FakeCompiler(self.STORY, functions={"greet": lambda name: f"Hi {name}"})
        controller = PreviewController(compiler=compiler)

        controller.preview(doc())

        events = controller.store.get_story_state().events
        assert isinstance(events[0], FunctionCallEvent)
        assert events[0].function_name == "greet"
        assert events[0].args == ["Ann"]
        assert events[0].result == "Hi Ann"
        assert events[1].text == "Hi Ann"

    def test_unbindable_function_reported(self):
        compiler = FakeCompiler(functions={"missing": len})
        controller = PreviewController(compiler=compiler)
        original_compile = compiler.compile

        def compile_rejecting(uri, source):
            result = original_compile(uri, source)
            result.story.engine.reject_bindings = {"missing"}
            return result

        compiler.compile = compile_rejecting
        controller.preview(doc())

        errors = controller.store.get_story_state().errors
        assert [e.message for e in errors] == ["Failed to bind external function: missing"]


class TestMessages:
    """handle_message()."""

    def test_select_choice_message(self, controller):
        controller.preview(doc())

        state = controller.handle_message(action("SELECT_CHOICE", {"choiceIndex": 0}))

        assert state.story.events[-1].text == "It creaks."
        assert state.ui.rewind_available is True

    def test_rewind_message(self, controller):
        controller.preview(doc())
        before = controller.store.get_story_state()
        controller.handle_message(action("SELECT_CHOICE", {"choiceIndex": 0}))

        state = controller.handle_message(action("REWIND_STORY"))

        assert state.story == before
        assert state.ui.rewind_available is False

    def test_restart_message(self, controller):
        controller.preview(doc())
        controller.handle_message(action("SELECT_CHOICE", {"choiceIndex": 1}))

        state = controller.handle_message(action("RESTART_STORY"))

        assert [e.text for e in state.story.events] == ["Hello.", "A door."]
        assert state.story.is_ended is False

    def test_clear_errors_message(self, controller):
        controller.preview(doc())
        controller.handle_message(action("SELECT_CHOICE", {"choiceIndex": 9}))

        state = controller.handle_message(action("CLEAR_ERRORS"))

        assert state.story.errors == []

    def test_unknown_action(self, controller):
        with pytest.raises(UnknownActionError):
            controller.handle_message(action("FLY"))

    def test_ready_starts_story_once(self, controller):
        controller.preview(doc())
        history = len(controller.store.get_story_history())

        controller.handle_message({"command": "ready"})

        assert len(controller.store.get_story_history()) == history

    def test_log_message(self, controller, caplog):
        with caplog.at_level(logging.INFO):
            controller.handle_message({"command": "log", "payload": {"message": "view loaded"}})

        assert "view loaded" in caplog.text

    def test_unknown_command_is_ignored(self, controller, caplog):
        with caplog.at_level(logging.WARNING):
            state = controller.handle_message({"command": "dance"})

        assert state.story.events == []
        assert "unknown message command" in caplog.text

    def test_dispose(self, controller, compiler):
        controller.preview(doc())
        engine = compiler.engines[0]

        controller.dispose()

        assert controller.has_story is False
        assert controller.document is None
        assert controller.store.get_story_state().events == []
        assert engine.on_error is None


class TestSessionManager:
    """Session lifecycle."""

    @pytest.fixture
    def sessions(self, compiler):
        return SessionManager(compiler=compiler, config=PreviewConfig(session_max_age=60))

    def test_create_and_get(self, sessions):
        session = sessions.create_session(metadata={"client": "test"})

        assert sessions.get_session(session.session_id) is session
        assert session.state == SessionState.CREATED
        assert session.metadata == {"client": "test"}
        assert session.is_active()

    def test_touch_activates_after_document(self, sessions):
        session = sessions.create_session()
        session.controller.preview(doc())

        session.touch()

        assert session.state == SessionState.ACTIVE

    def test_end_session(self, sessions):
        session = sessions.create_session()
        session.controller.preview(doc())

        assert sessions.end_session(session.session_id) is True
        assert session.state == SessionState.ENDED
        assert session.controller.has_story is False
        assert sessions.get_session(session.session_id) is None
        assert sessions.end_session(session.session_id) is False

    def test_list_active_sessions(self, sessions):
        a = sessions.create_session()
        b = sessions.create_session()
        sessions.end_session(a.session_id)

        assert sessions.list_active_sessions() == [b.session_id]

    def test_cleanup_stale_sessions(self, sessions):
        old = sessions.create_session()
        fresh = sessions.create_session()
        old.last_activity = time.time() - 120

        removed = sessions.cleanup_stale_sessions()

        assert removed == 1
        assert sessions.get_session(old.session_id) is None
        assert sessions.get_session(fresh.session_id) is fresh

    def test_sessions_are_independent(self, sessions):
        a = sessions.create_session()
        b = sessions.create_session()
        a.controller.preview(doc())

        assert b.controller.store.get_story_state().events == []

    def test_require_session(self, sessions):
        from ..engine_core.errors import SessionNotFoundError

        with pytest.raises(SessionNotFoundError):
            sessions.require_session("nope")
