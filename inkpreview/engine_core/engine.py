"""
Engine Boundary - The narrative engine and compiler as seen by the preview.

The engine evaluates compiled story content and is consumed as a black box.
Only StoryManager may call its mutating primitives (reset_state,
choose_choice_index, continue_step).

The compiler turns script source into a loadable engine instance. It is an
external collaborator: the preview only needs its result.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence, runtime_checkable


ErrorCallback = Callable[[str], None]


@runtime_checkable
class EngineChoice(Protocol):
    """A choice as reported by the engine."""
    text: str
    tags: Optional[Sequence[str]]


@runtime_checkable
class NarrativeEngine(Protocol):
    """
    Low-level stepping API of a narrative engine.

    continue_step() returns one line of text, or an empty string at the end
    of a paragraph. current_tags holds the tags of the last line produced.
    The engine calls on_error (when set) with raw diagnostic strings.
    """
    on_error: Optional[ErrorCallback]

    @property
    def can_continue(self) -> bool: ...

    @property
    def current_choices(self) -> Sequence[EngineChoice]: ...

    @property
    def current_tags(self) -> Sequence[str]: ...

    def continue_step(self) -> str: ...

    def choose_choice_index(self, index: int) -> None: ...

    def reset_state(self) -> None: ...


@runtime_checkable
class BindableEngine(Protocol):
    """Optional engine hook for binding external functions."""

    def bind_external_function(self, name: str, fn: Callable[..., Any]) -> None: ...


@dataclass
class CompiledStory:
    """A successfully compiled story, ready to be previewed."""
    engine: NarrativeEngine
    external_functions: Mapping[str, Callable[..., Any]] = field(default_factory=dict)


@dataclass
class CompilationResult:
    """Outcome of compiling a document."""
    story: CompiledStory | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.story is not None


class StoryCompiler(Protocol):
    """Compiles script source into an engine instance."""

    def compile(self, uri: str, source: str) -> CompilationResult: ...
