"""
Preview Controller - Connects a document, its compiled story and a store.

LIFECYCLE:
1. A document is opened or edited -> preview(document)
   - Same (uri, version) as the current preview: ignored
   - New version of the same document with live update off: ignored
   - Otherwise compiled, bound to a fresh StoryManager and started
2. The front-end sends messages -> handle_message(message)
3. The preview is closed -> dispose()

A compilation failure leaves the preview without an engine; only the
compiler diagnostics are shown.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping
import logging

from ..config import PreviewConfig
from ..engine_core.action import ActionType
from ..engine_core.engine import CompilationResult, CompiledStory, StoryCompiler
from ..engine_core.error_parser import parse_error_message
from ..engine_core.errors import CompilerUnavailableError, UnknownActionError
from ..engine_core.messages import MessageCommand, action_from_message
from ..engine_core.state import ErrorInfo, FunctionCallEvent, PreviewState
from ..engine_core.store import PreviewStore
from ..engine_core.story_actions import AddErrors, AddStoryEvents, InitializeStory, StartStory
from ..engine_core.story_manager import StoryManager

log = logging.getLogger(__name__)


COMPILE_FAILED_MESSAGE = (
    "Story had errors and could not be compiled. "
    "Review the Problem Panel for more information."
)


@dataclass(frozen=True)
class PreviewDocument:
    """A script document at one version."""
    uri: str
    version: int
    source: str = ""

    @property
    def file_name(self) -> str:
        return self.uri.rstrip("/").rsplit("/", 1)[-1]

    def is_same_version(self, other: PreviewDocument | None) -> bool:
        return other is not None and other.uri == self.uri and other.version == self.version


class PreviewController:
    """
    Owns one PreviewStore and the engine bound to it.

    Usage:
        controller = PreviewController(compiler=my_compiler)
        controller.preview(PreviewDocument("file:///story.ink", 1, source))
        controller.handle_message({"command": "action",
                                   "payload": {"type": "SELECT_CHOICE",
                                               "payload": {"choiceIndex": 0}}})
        controller.dispose()
    """

    def __init__(
        self,
        compiler: StoryCompiler | None = None,
        config: PreviewConfig | None = None,
    ):
        self.config = config or PreviewConfig()
        self._compiler = compiler
        self.store = PreviewStore(history_capacity=self.config.history_capacity)
        self._document: PreviewDocument | None = None

    @property
    def document(self) -> PreviewDocument | None:
        return self._document

    @property
    def title(self) -> str:
        name = self._document.file_name if self._document else "Story"
        return f"{name} (Preview)"

    @property
    def has_story(self) -> bool:
        return self.store.story_manager is not None

    # =========================================================================
    # Document lifecycle
    # =========================================================================

    def preview(self, document: PreviewDocument, compiled: CompiledStory | None = None) -> bool:
        """
        Show a document in the preview.

        Returns True when a story was (re)started, False when the document
        was ignored or failed to compile.
        """
        current = self._document
        if document.is_same_version(current):
            log.debug("Preview of %s v%d is current", document.uri, document.version)
            return False

        if (
            current is not None
            and current.uri == document.uri
            and not self.store.get_ui_state().live_update_enabled
        ):
            log.debug("Live update disabled; ignoring %s v%d", document.uri, document.version)
            return False

        if compiled is None:
            # Raises CompilerUnavailableError before the document is taken
            result = self._compile(document)
            if not result.success:
                self._document = document
                self._show_compile_errors(result)
                return False
            compiled = result.story

        self._document = document
        self._start(compiled)
        return True

    def _compile(self, document: PreviewDocument) -> CompilationResult:
        if self._compiler is None:
            raise CompilerUnavailableError(document.uri)

        log.info("Compiling %s v%d", document.uri, document.version)
        try:
            return self._compiler.compile(document.uri, document.source)
        except Exception as e:
            log.error("Compiler failed on %s", document.uri, exc_info=True)
            return CompilationResult(errors=[str(e)])

    def _show_compile_errors(self, result: CompilationResult) -> None:
        log.info("Compilation failed with %d errors", len(result.errors))
        self.store.set_story_manager(None)
        self.store.reset()

        errors = [parse_error_message(message).to_error_info() for message in result.errors]
        errors.append(ErrorInfo(message=COMPILE_FAILED_MESSAGE))
        self.store.dispatch(AddErrors(errors))

    def _start(self, compiled: CompiledStory) -> None:
        manager = StoryManager(compiled.engine, max_steps=self.config.max_continue_steps)
        self.store.set_story_manager(manager)
        failed = manager.bind_external_functions(
            compiled.external_functions,
            on_call=self._on_function_call,
        )

        self.store.reset()
        self.store.dispatch(InitializeStory())
        self.store.dispatch(StartStory())

        if failed:
            self.store.dispatch(AddErrors([
                ErrorInfo(message=f"Failed to bind external function: {name}")
                for name in failed
            ]))

    def _on_function_call(self, event: FunctionCallEvent) -> None:
        self.store.dispatch(AddStoryEvents([event]))

    # =========================================================================
    # Front-end messages
    # =========================================================================

    def handle_message(self, message: Mapping[str, Any]) -> PreviewState:
        """Handle one inbound front-end message and return the resulting state."""
        command = message.get("command")
        payload = message.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise UnknownActionError(f"{command} (payload must be an object)")

        if command == MessageCommand.READY:
            # The view may load after the story already started
            if self.has_story and not self.store.get_story_history():
                self.store.dispatch(StartStory())
        elif command == MessageCommand.LOG:
            log.info("Preview: %s", payload.get("message", ""))
        elif command == MessageCommand.ACTION:
            action = action_from_message(payload.get("type", ""), payload.get("payload"))
            self.store.dispatch(action)
        else:
            log.warning("Ignoring unknown message command %r", command)

        return self.store.get_state()

    def rewind(self) -> PreviewState:
        """Rewind to the last choice through the UI domain."""
        return self.handle_message({
            "command": MessageCommand.ACTION,
            "payload": {"type": ActionType.REWIND_STORY.value},
        })

    def dispose(self) -> None:
        """Unbind the engine, reset the store and drop callbacks."""
        log.debug("Disposing preview of %s", self._document.uri if self._document else None)
        self.store.dispose()
        self.store.reset()
        self._document = None
