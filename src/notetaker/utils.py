"""Utility functions for the notetaker package."""
import re

# Anything outside ASCII letters, digits, whitespace, hyphen and underscore
_UNSAFE_TITLE_CHARS = re.compile(r"[^a-zA-Z0-9\s\-_]", re.ASCII)


def sanitize_title(title: str) -> str:
    """Strip characters that are unsafe in a file name.

    Keeps only ASCII letters, digits, whitespace, hyphens and underscores,
    then trims surrounding whitespace. The result is deterministic and
    idempotent, so the same unsafe title always maps to the same file.

    Examples:
        "../../etc/passwd" -> "etcpasswd"
        "Hub: My Notes" -> "Hub My Notes"
        "test_note" -> "test_note"

    Args:
        title: The user-supplied note title.

    Returns:
        The sanitized title (possibly empty).
    """
    if not title:
        return ""
    return _UNSAFE_TITLE_CHARS.sub("", title).strip()


def get_content_snippet(content: str, query: str, max_length: int = 100) -> str:
    """Extract a snippet of ``content`` around the first matching query term.

    The window is centred on the first query term found (case-insensitive),
    nudged to word boundaries, and marked with ``...`` where text was cut.

    Example:
        >>> get_content_snippet("short text", "text")
        'short text'
    """
    lower_content = content.lower()
    search_terms = [term for term in query.lower().split() if term]

    position = 0
    for term in search_terms:
        pos = lower_content.find(term)
        if pos != -1:
            position = pos
            break

    start = max(0, position - max_length // 2)
    end = min(len(content), start + max_length)

    # Re-anchor when the window hit the end of the content
    if end == len(content):
        start = max(0, end - max_length)

    if start > 0:
        next_space = content.find(" ", start)
        if next_space != -1 and next_space < position:
            start = next_space + 1

    if end < len(content):
        last_space = content.rfind(" ", 0, end + 1)
        if last_space != -1 and last_space > position:
            end = last_space

    snippet = content[start:end]
    if start > 0:
        snippet = "..." + snippet
    if end < len(content):
        snippet = snippet + "..."
    return snippet
