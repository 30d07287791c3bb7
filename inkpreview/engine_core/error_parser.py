"""
Error Parser - Classifies raw engine diagnostics.
"""

from __future__ import annotations
from dataclasses import dataclass

from .state import ErrorInfo, ErrorSeverity


# Checked in order; first match wins
SEVERITY_PREFIXES: tuple[tuple[str, ErrorSeverity], ...] = (
    ("RUNTIME ERROR:", ErrorSeverity.ERROR),
    ("RUNTIME WARNING:", ErrorSeverity.WARNING),
    ("Error:", ErrorSeverity.ERROR),
    ("Warning:", ErrorSeverity.WARNING),
)


@dataclass
class ParsedError:
    """A diagnostic split into message and (possibly unknown) severity."""
    message: str
    severity: ErrorSeverity | None = None

    def to_error_info(self, default: ErrorSeverity = ErrorSeverity.ERROR) -> ErrorInfo:
        return ErrorInfo(message=self.message, severity=self.severity or default)


def parse_error_message(raw_message: str) -> ParsedError:
    """
    Parse a raw engine error or warning string.

    Severity comes from a recognized prefix, None otherwise. The message is
    the text after the first colon, trimmed; without a colon it is returned
    unchanged.
    """
    message = raw_message if isinstance(raw_message, str) else str(raw_message)

    severity = None
    for prefix, prefix_severity in SEVERITY_PREFIXES:
        if message.startswith(prefix):
            severity = prefix_severity
            break

    colon = message.find(":")
    if colon != -1:
        message = message[colon + 1:].strip()

    return ParsedError(message=message, severity=severity)


def error_from_exception(error: BaseException, fallback: str) -> ErrorInfo:
    """Classify an exception raised by the engine into an ErrorInfo."""
    raw = str(error) or fallback
    return parse_error_message(raw).to_error_info()
