"""Error types raised by the note store.

Every error carries an :class:`ErrorCode` and a small ``details`` mapping so
the CLI (or any other caller) can report failures without parsing messages.

Absence is not an error here: a missing note is ``None`` from a lookup and
``False`` from a delete.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Stable numeric identifiers, grouped by the layer that fails."""

    # Note content (1xxx)
    NOTE_VALIDATION_FAILED = 1002
    NOTE_PARSE_FAILED = 1006

    # File system (4xxx)
    STORAGE_READ_FAILED = 4001
    STORAGE_WRITE_FAILED = 4002
    STORAGE_DELETE_FAILED = 4003

    # Caller input (7xxx)
    VALIDATION_FAILED = 7001
    PATH_TRAVERSAL_DETECTED = 7005
    INVALID_TITLE = 7006


def _compact(**values: Any) -> Dict[str, Any]:
    """Keep only the detail entries that were actually supplied."""
    return {key: value for key, value in values.items() if value is not None}


class NotetakerError(Exception):
    """Root of the notetaker error hierarchy.

    Attributes:
        message: Text meant for a person
        code: The :class:`ErrorCode` for programs
        details: Extra key/value context, already truncated where needed
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form of the error, e.g. for JSON output."""
        return {
            "error": type(self).__name__,
            "code": self.code.value,
            "code_name": self.code.name,
            "message": self.message,
            "details": dict(self.details),
        }

    def __str__(self) -> str:
        text = f"[{self.code.name}] {self.message}"
        if not self.details:
            return text
        pairs = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{text} ({pairs})"


class InvalidPathError(NotetakerError):
    """A title has no usable file inside the notes root."""

    def __init__(
        self,
        title: str,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.PATH_TRAVERSAL_DETECTED
    ):
        super().__init__(
            message or "Invalid note path: path traversal detected",
            code=code,
            details={"title": title[:100]},
        )
        self.title = title


class StorageUnavailableError(NotetakerError):
    """Reading, writing or removing a note file failed at the OS level."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        code: ErrorCode = ErrorCode.STORAGE_READ_FAILED,
        original_error: Optional[Exception] = None
    ):
        super().__init__(
            message,
            code=code,
            details=_compact(
                operation=operation or None,
                # File name only; the notes root stays out of messages
                path_hint=path.rsplit("/", 1)[-1] if path else None,
                original_error=str(original_error)[:200] if original_error else None,
            ),
        )
        self.operation = operation
        self.path = path
        self.original_error = original_error


class NoteParseError(NotetakerError, ValueError):
    """The header block of a note is not a YAML mapping."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(
            message,
            code=ErrorCode.NOTE_PARSE_FAILED,
            details=_compact(
                original_error=str(original_error)[:200] if original_error else None
            ),
        )
        self.original_error = original_error


class NoteValidationError(NotetakerError):
    """Title or content handed to the service cannot be stored."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        code: ErrorCode = ErrorCode.NOTE_VALIDATION_FAILED
    ):
        super().__init__(
            message,
            code=code,
            details=_compact(
                field=field or None,
                value=str(value)[:100] if value is not None else None,
            ),
        )
        self.field = field
        self.value = value
