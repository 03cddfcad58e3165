"""
docmask exceptions.

Exception Hierarchy:
    DocmaskError (base)
    ├── ConfigurationError
    ├── InvalidInputError
    ├── DecodeError
    └── StructureMismatchError
"""

from __future__ import annotations

from .types import ErrorKind

__all__ = [
    "DocmaskError",
    "ConfigurationError",
    "InvalidInputError",
    "DecodeError",
    "StructureMismatchError",
]


class DocmaskError(Exception):
    """Base exception for all docmask errors."""
    kind: ErrorKind = ErrorKind.INVALID_INPUT


class ConfigurationError(DocmaskError):
    """Configuration could not be loaded or failed validation."""
    pass


class InvalidInputError(DocmaskError):
    """Caller passed text, overrides or thresholds outside the accepted range."""
    kind = ErrorKind.INVALID_INPUT


class DecodeError(DocmaskError):
    """A decoder collaborator could not turn file bytes into a node map."""
    kind = ErrorKind.DECODE_FAILURE

    def __init__(self, message: str, format_hint: str | None = None):
        self.format_hint = format_hint
        super().__init__(message)


class StructureMismatchError(DocmaskError):
    """The node map and the sanitized text no longer agree."""
    kind = ErrorKind.STRUCTURE_MISMATCH
