"""
inkpreview - Interactive preview engine for narrative scripts.

Drives a compiled narrative engine through its continue/choice loop and
keeps the resulting timeline in an action-driven state store:
- Story and UI state domains with independent history
- Undo, replay and rewind-to-last-choice
- Resilient story progression with inline error recovery
- Session management and an HTTP API for preview front-ends
"""

__version__ = "0.1.0"
