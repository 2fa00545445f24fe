# tests/test_utils.py
"""Tests for utility helpers."""
from notetaker.utils import get_content_snippet


class TestContentSnippet:
    """Tests for get_content_snippet."""

    def test_short_content_is_returned_whole(self):
        assert get_content_snippet("short text", "text") == "short text"

    def test_window_centres_on_match(self):
        content = " ".join(f"word{i}" for i in range(60)) + " needle " + "tail " * 40
        snippet = get_content_snippet(content, "needle", max_length=40)

        assert "needle" in snippet
        assert snippet.startswith("...")
        assert snippet.endswith("...")
        assert len(snippet) <= 40 + 6

    def test_match_is_case_insensitive(self):
        content = "x " * 100 + "Gravity rules"
        assert "Gravity" in get_content_snippet(content, "gravity", max_length=30)

    def test_first_matching_term_wins(self):
        content = "alpha " * 30 + "beta " * 30
        snippet = get_content_snippet(content, "missing beta", max_length=20)
        assert "beta" in snippet

    def test_no_match_starts_at_beginning(self):
        content = "lorem ipsum " * 30
        snippet = get_content_snippet(content, "absent", max_length=20)
        assert not snippet.startswith("...")
        assert snippet.endswith("...")

    def test_cut_at_word_boundary(self):
        content = "aaaa bbbb cccc dddd eeee ffff"
        snippet = get_content_snippet(content, "aaaa", max_length=12)
        assert snippet == "aaaa bbbb..."
