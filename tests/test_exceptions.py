# tests/test_exceptions.py
"""Tests for the error hierarchy."""
from notetaker.exceptions import (
    ErrorCode,
    InvalidPathError,
    NoteParseError,
    NoteValidationError,
    StorageUnavailableError,
)


class TestErrorDetails:
    """Tests for error codes, details and rendering."""

    def test_storage_error_keeps_only_file_name(self):
        error = StorageUnavailableError(
            "Failed to read note", operation="get", path="/secret/root/b.md"
        )
        assert error.details == {"operation": "get", "path_hint": "b.md"}
        assert str(error) == "[STORAGE_READ_FAILED] Failed to read note (operation=get, path_hint=b.md)"
        assert "/secret" not in str(error.to_dict())

    def test_unset_details_are_omitted(self):
        error = NoteValidationError("Title must not be empty")
        assert error.details == {}
        assert str(error) == "[NOTE_VALIDATION_FAILED] Title must not be empty"

    def test_to_dict(self):
        error = InvalidPathError("../x")
        assert error.to_dict() == {
            "error": "InvalidPathError",
            "code": 7005,
            "code_name": "PATH_TRAVERSAL_DETECTED",
            "message": "Invalid note path: path traversal detected",
            "details": {"title": "../x"},
        }

    def test_parse_error_is_a_value_error(self):
        cause = ValueError("bad yaml")
        error = NoteParseError("Header is not a mapping", original_error=cause)
        assert isinstance(error, ValueError)
        assert error.code is ErrorCode.NOTE_PARSE_FAILED
        assert error.details["original_error"] == "bad yaml"
