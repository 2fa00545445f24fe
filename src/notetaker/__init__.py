"""
Notetaker - plain-text notes with structured metadata.

Notes are stored as markdown files with a YAML header block. Two derived
views, a full-text search index and a bidirectional link graph, are kept
in memory and updated on every write.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notetaker")
except PackageNotFoundError:
    __version__ = "1.0.0"
