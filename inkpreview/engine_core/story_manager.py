"""
Story Manager - Story progression on top of the engine's stepping API.

The manager is the only component that touches the engine's mutating
primitives. It turns continue_step() into a continue-loop that collects
text events, choices and errors, and wraps choice selection with range
validation. Engine failures are recovered inline and reported in the
result instead of being raised.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping
import logging

from .engine import BindableEngine, NarrativeEngine
from .error_parser import error_from_exception, parse_error_message
from .state import Choice, ErrorInfo, ErrorSeverity, FunctionCallEvent, StoryEvent, TextEvent

log = logging.getLogger(__name__)


STALE_CHOICE_MESSAGE = (
    "Choice no longer available after a live refresh; rewound to the choice point"
)


@dataclass
class StoryProgressResult:
    """Everything produced by one continue or select_choice call."""
    events: list[StoryEvent] = field(default_factory=list)
    choices: list[Choice] = field(default_factory=list)
    is_ended: bool = False
    errors: list[ErrorInfo] = field(default_factory=list)
    choice_available: bool = True  # False when select_choice got a stale index


class StoryManager:
    """
    Wraps exactly one bound engine instance.

    Usage:
        manager = StoryManager(engine)
        manager.reset()
        result = manager.continue_story()
        if result.choices:
            result = manager.select_choice(result.choices[0].index)
    """

    def __init__(self, engine: NarrativeEngine, max_steps: int | None = None):
        self._engine = engine
        self._max_steps = max_steps
        self._error_callback: Callable[[ErrorInfo], None] | None = None
        self._muted = False

    @property
    def engine(self) -> NarrativeEngine:
        return self._engine

    # =========================================================================
    # Progression
    # =========================================================================

    def reset(self) -> None:
        """Reset the engine to the start of the story. Failures are only logged."""
        log.debug("Resetting story state")
        try:
            self._engine.reset_state()
        except Exception:
            # A failed reset must not break the surrounding dispatch chain;
            # the engine keeps its previous state.
            log.error("Failed to reset story state", exc_info=True)

    def continue_story(self) -> StoryProgressResult:
        """Continue until the story reaches a choice point, an error, or the end."""
        if self.is_ended():
            return StoryProgressResult(is_ended=True)

        events: list[StoryEvent] = []
        errors: list[ErrorInfo] = []
        steps = 0

        while self._engine.can_continue:
            if self._max_steps is not None and steps >= self._max_steps:
                log.warning("Continuation stopped after %d steps", steps)
                errors.append(ErrorInfo(
                    message=f"Story continuation stopped after {steps} steps",
                    severity=ErrorSeverity.WARNING,
                ))
                break
            steps += 1

            try:
                text = self._engine.continue_step()
            except Exception as e:
                log.error("Error during story continuation", exc_info=True)
                errors.append(error_from_exception(e, "Unknown story execution error"))
                break

            # No text marks the end of the paragraph, not an error
            if not text:
                break

            tags = list(self._engine.current_tags or [])
            events.append(TextEvent(text=text, tags=tags))

        choices = self.get_current_choices()
        is_ended = self.is_ended()
        log.debug(
            "Continue completed: %d events, %d choices, %d errors, ended: %s",
            len(events), len(choices), len(errors), is_ended,
        )
        return StoryProgressResult(
            events=events,
            choices=choices,
            is_ended=is_ended,
            errors=errors,
        )

    def select_choice(self, index: int) -> StoryProgressResult:
        """
        Select a choice and continue to the next choice point or the end.

        An index the engine no longer offers (for example after the document
        was recompiled) is reported as an info error without touching the
        engine.
        """
        log.debug("Selecting choice %d", index)

        available = {choice.index for choice in self.get_current_choices()}
        if index not in available:
            log.info("Choice %d not available (have %s)", index, sorted(available))
            return StoryProgressResult(
                choices=self.get_current_choices(),
                is_ended=self.is_ended(),
                errors=[ErrorInfo(message=STALE_CHOICE_MESSAGE, severity=ErrorSeverity.INFO)],
                choice_available=False,
            )

        try:
            self._engine.choose_choice_index(index)
        except Exception as e:
            log.error("Error selecting choice %d", index, exc_info=True)
            return StoryProgressResult(
                is_ended=True,
                errors=[error_from_exception(e, "Unknown error selecting choice")],
            )

        return self.continue_story()

    # =========================================================================
    # Queries
    # =========================================================================

    def is_ended(self) -> bool:
        """True when the story cannot continue and offers no choices."""
        return not self._engine.can_continue and len(self._engine.current_choices) == 0

    def can_continue(self) -> bool:
        return bool(self._engine.can_continue)

    def get_current_choices(self) -> list[Choice]:
        return [
            Choice(
                index=i,
                text=choice.text,
                tags=list(getattr(choice, "tags", None) or []),
            )
            for i, choice in enumerate(self._engine.current_choices)
        ]

    # =========================================================================
    # Engine hooks
    # =========================================================================

    def on_error(self, callback: Callable[[ErrorInfo], None] | None) -> None:
        """Forward classified engine diagnostics to callback (None detaches)."""
        self._error_callback = callback
        self._engine.on_error = self._handle_engine_error if callback else None

    def bind_external_functions(
        self,
        functions: Mapping[str, Callable[..., Any]],
        on_call: Callable[[FunctionCallEvent], None] | None = None,
    ) -> list[str]:
        """
        Bind Python callables as the story's external functions.

        Every call is reported to on_call as a FunctionCallEvent.
        Returns the names that could not be bound.
        """
        if not functions:
            return []

        if not isinstance(self._engine, BindableEngine):
            log.warning("Engine does not support external functions")
            return list(functions)

        failed = []
        for name, fn in functions.items():
            try:
                self._engine.bind_external_function(name, self._wrap_function(name, fn, on_call))
            except Exception:
                log.error("Failed to bind external function %s", name, exc_info=True)
                failed.append(name)
        return failed

    @contextmanager
    def muted(self) -> Iterator[StoryManager]:
        """Suppress error and function-call notifications while driving the engine."""
        previous = self._muted
        self._muted = True
        try:
            yield self
        finally:
            self._muted = previous

    def _handle_engine_error(self, raw_message: str) -> None:
        info = parse_error_message(raw_message).to_error_info()
        if self._muted or not self._error_callback:
            log.debug("Engine diagnostic suppressed: %s", raw_message)
            return
        self._error_callback(info)

    def _wrap_function(
        self,
        name: str,
        fn: Callable[..., Any],
        on_call: Callable[[FunctionCallEvent], None] | None,
    ) -> Callable[..., Any]:
        def bound(*args):
            try:
                result = fn(*args)
            except Exception as e:
                raise RuntimeError(f"RUNTIME ERROR: External function '{name}' failed ({e})") from e
            if on_call and not self._muted:
                on_call(FunctionCallEvent(function_name=name, args=list(args), result=result))
            return result

        return bound
