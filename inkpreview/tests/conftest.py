"""
Pytest fixtures for inkpreview tests.

ScriptedEngine is an in-memory narrative engine driven by a dict of
knots. Each knot has lines and (optionally) choices leading to other
knots. A line is one of:
- "text" or ("text", ["tag"])   Produced by continue_step()
- an Exception instance         Raised by continue_step()
- Call(name, args)              Calls a bound external function
- Warn(message, text)           Reports a diagnostic, then produces text
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from ..config import PreviewConfig
from ..engine_core.engine import CompilationResult, CompiledStory
from ..engine_core.store import PreviewStore
from ..engine_core.story_manager import StoryManager
from ..session.controller import PreviewController


@dataclass
class Call:
    name: str
    args: list[Any] = field(default_factory=list)
    template: str = "{result}"


@dataclass
class Warn:
    message: str
    text: str


@dataclass
class ScriptedChoice:
    text: str
    tags: list[str] = field(default_factory=list)


STORY: dict[str, dict[str, Any]] = {
    "start": {
        "lines": ["Hello.", ("A door.", ["scene:hall"])],
        "choices": [("Open it", "open"), ("Leave", "leave")],
    },
    "open": {
        "lines": ["It creaks."],
        "choices": [("Go in", "inside")],
    },
    "inside": {"lines": ["The end."]},
    "leave": {"lines": ["Bye."]},
}


class ScriptedEngine:
    """In-memory engine following a knot script."""

    def __init__(self, story: dict[str, dict[str, Any]] | None = None, start: str = "start"):
        self.story = story or STORY
        self.start = start
        self.on_error: Callable[[str], None] | None = None
        self.functions: dict[str, Callable[..., Any]] = {}

        self.reset_calls = 0
        self.chosen: list[int] = []
        self.fail_reset = False
        self.fail_choose = False
        self.reject_bindings: set[str] = set()

        self._knot = start
        self._position = 0
        self._tags: list[str] = []

    # Stepping API

    @property
    def can_continue(self) -> bool:
        return self._position < len(self._lines)

    @property
    def current_choices(self) -> list[ScriptedChoice]:
        if self.can_continue:
            return []
        return [ScriptedChoice(text) for text, _ in self.story[self._knot].get("choices", [])]

    @property
    def current_tags(self) -> list[str]:
        return list(self._tags)

    def continue_step(self) -> str:
        line = self._lines[self._position]
        self._position += 1
        self._tags = []

        if isinstance(line, Exception):
            raise line
        if isinstance(line, Call):
            result = self.functions[line.name](*line.args)
            return line.template.format(result=result)
        if isinstance(line, Warn):
            if self.on_error:
                self.on_error(line.message)
            return line.text
        if isinstance(line, tuple):
            text, tags = line
            self._tags = list(tags)
            return text
        return line

    def choose_choice_index(self, index: int) -> None:
        if self.fail_choose:
            raise RuntimeError("RUNTIME ERROR: choice target missing")
        choices = self.story[self._knot].get("choices", [])
        if not 0 <= index < len(choices) or self.can_continue:
            raise IndexError(f"Choice out of range: {index}")
        self.chosen.append(index)
        self._knot = choices[index][1]
        self._position = 0

    def reset_state(self) -> None:
        self.reset_calls += 1
        if self.fail_reset:
            raise RuntimeError("reset failed")
        self._knot = self.start
        self._position = 0
        self._tags = []

    # External functions

    def bind_external_function(self, name: str, fn: Callable[..., Any]) -> None:
        if name in self.reject_bindings:
            raise ValueError(f"Unknown external function: {name}")
        self.functions[name] = fn

    @property
    def _lines(self) -> list[Any]:
        return self.story[self._knot]["lines"]


class PlainEngine:
    """Engine without external function support."""

    def __init__(self):
        self.on_error = None
        self.can_continue = True
        self.current_choices = []
        self.current_tags = []
        self._lines = ["Only line."]

    def continue_step(self) -> str:
        self.can_continue = False
        return self._lines[0]

    def choose_choice_index(self, index: int) -> None:
        raise IndexError(index)

    def reset_state(self) -> None:
        self.can_continue = True


class FakeCompiler:
    """
    Compiler double.

    Sources containing "ERROR" fail with a classified diagnostic; everything
    else compiles to a fresh ScriptedEngine over `story`.
    """

    def __init__(self, story: dict[str, dict[str, Any]] | None = None, functions: dict | None = None):
        self.story = story or STORY
        self.functions = functions or {}
        self.compiled: list[tuple[str, str]] = []
        self.engines: list[ScriptedEngine] = []

    def compile(self, uri: str, source: str) -> CompilationResult:
        self.compiled.append((uri, source))
        if "ERROR" in source:
            return CompilationResult(errors=["Error: line 3: unexpected token"])

        engine = ScriptedEngine(self.story)
        self.engines.append(engine)
        return CompilationResult(story=CompiledStory(engine=engine, external_functions=self.functions))


@pytest.fixture
def engine() -> ScriptedEngine:
    """A scripted engine at the start of STORY."""
    return ScriptedEngine()


@pytest.fixture
def manager(engine: ScriptedEngine) -> StoryManager:
    return StoryManager(engine)


@pytest.fixture
def store(manager: StoryManager) -> PreviewStore:
    """A store with the scripted engine bound."""
    return PreviewStore(story_manager=manager)


@pytest.fixture
def bare_store() -> PreviewStore:
    """A store with no engine bound."""
    return PreviewStore()


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def controller(compiler: FakeCompiler) -> PreviewController:
    return PreviewController(compiler=compiler, config=PreviewConfig())
