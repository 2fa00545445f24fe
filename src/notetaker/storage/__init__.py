"""Storage layer for the notetaker package."""

from notetaker.storage.link_graph import LinkGraph
from notetaker.storage.metadata_merger import MetadataMerger
from notetaker.storage.note_repository import NoteRepository
from notetaker.storage.path_resolver import PathResolver
from notetaker.storage.search_index import SearchIndex

__all__ = [
    "LinkGraph",
    "MetadataMerger",
    "NoteRepository",
    "PathResolver",
    "SearchIndex",
]
