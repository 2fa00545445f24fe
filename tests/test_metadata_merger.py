# tests/test_metadata_merger.py
"""Tests for header block parsing, serialization and merging."""
import datetime

import pytest

from notetaker.exceptions import ErrorCode, NoteParseError
from notetaker.storage.metadata_merger import MetadataMerger

NOW = datetime.datetime(2024, 5, 6, 7, 8)


@pytest.fixture
def merger():
    return MetadataMerger()


class TestSplit:
    """Tests for MetadataMerger.split."""

    def test_split_header_and_body(self, merger):
        """A header block is parsed into a mapping and the rest is body."""
        raw = "---\ntitle: Alpha\ntags: [a, b]\n---\nHello [[Beta]]\n"
        header, body = merger.split(raw)
        assert header == {"title": "Alpha", "tags": ["a", "b"]}
        assert body == "Hello [[Beta]]\n"

    def test_text_without_header_is_all_body(self, merger):
        """Plain text has an empty header."""
        header, body = merger.split("just text\n---\nmore")
        assert header == {}
        assert body == "just text\n---\nmore"

    def test_quoted_strings_are_unquoted(self, merger):
        """String values may be quoted in the header."""
        header, _ = merger.split('---\nauthor: "Ada Lovelace"\nmood: \'ok\'\n---\n')
        assert header == {"author": "Ada Lovelace", "mood": "ok"}

    def test_empty_header_block(self, merger):
        """An empty header block yields an empty mapping."""
        header, body = merger.split("---\n---\nbody")
        assert header == {}
        assert body == "body"

    def test_body_whitespace_is_preserved(self, merger):
        """Leading and trailing whitespace in the body survives parsing."""
        header, body = merger.split("---\nk: v\n---\n\n  indented\n\n")
        assert header == {"k": "v"}
        assert body == "\n  indented\n\n"

    def test_malformed_yaml_raises_parse_error(self, merger):
        """Invalid YAML in the header is reported as NoteParseError."""
        with pytest.raises(NoteParseError) as exc_info:
            merger.split("---\nkey: [unclosed\n---\nbody")
        assert exc_info.value.code == ErrorCode.NOTE_PARSE_FAILED
        assert isinstance(exc_info.value, ValueError)

    def test_non_mapping_header_raises_parse_error(self, merger):
        """A header that is a list rather than a mapping is rejected."""
        with pytest.raises(NoteParseError):
            merger.split("---\n- a\n- b\n---\nbody")


class TestJoin:
    """Tests for MetadataMerger.join and round-tripping."""

    def test_join_layout(self, merger):
        """Header keys keep their order and lists use the inline form."""
        raw = merger.join(
            {"title": "Alpha", "createdAt": "2024-01-02 03:04", "tags": ["a", "b"]},
            "Body\n",
        )
        assert raw == (
            "---\n"
            "title: Alpha\n"
            "createdAt: 2024-01-02 03:04\n"
            "tags: [a, b]\n"
            "---\n"
            "Body\n"
        )

    def test_timestamps_survive_as_strings(self, merger):
        """Minute-precision timestamps are read back as plain strings."""
        header, _ = merger.split(merger.join({"updatedAt": "2024-01-02 03:04"}, ""))
        assert header["updatedAt"] == "2024-01-02 03:04"

    @pytest.mark.parametrize(
        "header,body",
        [
            ({"title": "A", "tags": ["x", "y"], "count": 3}, "Line one\n\nLine two"),
            ({}, "---\nlooks like a header\n---\n"),
            ({"note": "multi\nline value", "date": "2024-01-01"}, "  spaced  "),
            ({"nested": {"k": [1, 2]}}, ""),
        ],
    )
    def test_round_trip(self, merger, header, body):
        """join then split reproduces the header and the exact body."""
        parsed_header, parsed_body = merger.split(merger.join(header, body))
        assert parsed_header == header
        assert parsed_body == body
        assert merger.split(merger.join(parsed_header, parsed_body)) == (header, body)


class TestMerge:
    """Tests for MetadataMerger.merge."""

    def test_first_write_sets_both_timestamps(self, merger):
        """Without an existing header, createdAt equals the write time."""
        merged = merger.merge(None, {"tags": ["a"]}, "Alpha", NOW)
        assert merged == {
            "title": "Alpha",
            "createdAt": "2024-05-06 07:08",
            "updatedAt": "2024-05-06 07:08",
            "tags": ["a"],
        }

    def test_created_at_is_carried_over(self, merger):
        """createdAt comes from the existing header."""
        existing = {"title": "Alpha", "createdAt": "2020-01-01 00:00", "updatedAt": "x"}
        merged = merger.merge(existing, {}, "Alpha", NOW)
        assert merged["createdAt"] == "2020-01-01 00:00"
        assert merged["updatedAt"] == "2024-05-06 07:08"

    def test_reserved_incoming_keys_are_discarded(self, merger):
        """Callers cannot set title, createdAt or updatedAt."""
        incoming = {
            "title": "Spoofed",
            "createdAt": "1999-01-01 00:00",
            "updatedAt": "1999-01-01 00:00",
            "author": "me",
        }
        merged = merger.merge(None, incoming, "Real", NOW)
        assert merged["title"] == "Real"
        assert merged["createdAt"] == "2024-05-06 07:08"
        assert merged["updatedAt"] == "2024-05-06 07:08"
        assert merged["author"] == "me"

    def test_user_fields_are_fully_replaced(self, merger):
        """Existing user keys missing from the input are dropped."""
        existing = {"title": "N", "createdAt": "2020-01-01 00:00", "tags": ["a", "b"]}
        merged = merger.merge(existing, {"status": "done"}, "N", NOW)
        assert "tags" not in merged
        assert merged["status"] == "done"

    def test_incoming_header_is_not_mutated(self, merger):
        """The caller's mapping is left untouched."""
        incoming = {"title": "x", "k": "v"}
        merger.merge(None, incoming, "N", NOW)
        assert incoming == {"title": "x", "k": "v"}
