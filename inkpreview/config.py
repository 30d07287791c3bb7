"""
Configuration - Environment-driven settings for the preview engine.

Environment variables:
    INKPREVIEW_HISTORY_CAPACITY     Per-domain history capacity (default 1000)
    INKPREVIEW_MAX_CONTINUE_STEPS   Optional cap on continuation steps (default unbounded)
    INKPREVIEW_LOG_LEVEL            Logging level for the CLI (default INFO)
    INKPREVIEW_SESSION_MAX_AGE      Stale session horizon in seconds (default 3600)
    ALLOWED_ORIGINS                 Comma separated CORS origins (default *)
    INKPREVIEW_COMPILER             "module:attribute" of a StoryCompiler factory (default none)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any
import importlib
import os


DEFAULT_HISTORY_CAPACITY = 1000
DEFAULT_SESSION_MAX_AGE = 3600


def _int_env(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


@dataclass
class PreviewConfig:
    """Runtime settings shared by the store, sessions and API."""
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    max_continue_steps: int | None = None
    log_level: str = "INFO"
    session_max_age: int = DEFAULT_SESSION_MAX_AGE
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    compiler: str | None = None

    def __post_init__(self):
        if self.history_capacity < 1:
            raise ValueError("history_capacity must be >= 1")
        if self.max_continue_steps is not None and self.max_continue_steps < 1:
            raise ValueError("max_continue_steps must be >= 1")

    @classmethod
    def from_env(cls) -> PreviewConfig:
        """Build configuration from INKPREVIEW_* environment variables."""
        return cls(
            history_capacity=_int_env("INKPREVIEW_HISTORY_CAPACITY", DEFAULT_HISTORY_CAPACITY),
            max_continue_steps=_int_env("INKPREVIEW_MAX_CONTINUE_STEPS", None),
            log_level=os.getenv("INKPREVIEW_LOG_LEVEL", "INFO").upper(),
            session_max_age=_int_env("INKPREVIEW_SESSION_MAX_AGE", DEFAULT_SESSION_MAX_AGE),
            allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
            compiler=os.getenv("INKPREVIEW_COMPILER") or None,
        )

    def load_compiler(self) -> Any:
        """
        Import and build the configured story compiler.

        The setting names a callable as "package.module:attribute"; it is
        called with no arguments. Returns None when no compiler is set.
        """
        if not self.compiler:
            return None

        module_name, _, attribute = self.compiler.partition(":")
        if not module_name or not attribute:
            raise ValueError(
                f"INKPREVIEW_COMPILER must look like 'module:attribute', got {self.compiler!r}"
            )
        factory = getattr(importlib.import_module(module_name), attribute)
        return factory()
