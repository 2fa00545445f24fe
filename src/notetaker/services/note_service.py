"""Service layer for note operations.

The service is the only component callers use. Every mutation writes to the
note store first and, only once the write succeeded, updates the search
index and the link graph with the exact text that is now on disk.

There is no rollback across the three stores: if a derived-store update
raises after the file was written, disk and memory disagree until
:meth:`NoteService.rebuild_indexes` runs.
"""

import logging
import threading
import weakref
from pathlib import Path
from typing import Dict, List, Optional

from notetaker.exceptions import NoteValidationError
from notetaker.models.schema import LinkEdge, Note, NoteWithLinks
from notetaker.observability import traced
from notetaker.storage.link_graph import LinkGraph
from notetaker.storage.note_repository import NoteRepository
from notetaker.storage.search_index import SearchIndex

logger = logging.getLogger(__name__)


class NoteService:
    """Service for managing notes and their derived indexes."""

    def __init__(
        self,
        repository: Optional[NoteRepository] = None,
        search_index: Optional[SearchIndex] = None,
        link_graph: Optional[LinkGraph] = None,
        notes_dir: Optional[Path] = None,
    ):
        """Initialize the service.

        Args:
            repository: Note storage backend. Created with defaults if None.
            search_index: Search index instance. A fresh one if None.
            link_graph: Link graph instance. A fresh one if None.
            notes_dir: Notes root for the default repository.
                Only used when repository is None.
        """
        self.repository = repository or NoteRepository(notes_dir=notes_dir)
        self.search_index = search_index or SearchIndex()
        self.link_graph = link_graph or LinkGraph()

        # Per-title locks serialize writers of the same note in this process
        self._note_locks: weakref.WeakValueDictionary[str, threading.RLock] = (
            weakref.WeakValueDictionary()
        )
        self._note_locks_lock = threading.Lock()

        # file title -> titles the derived stores hold entries under for it
        self._titles_by_file: Dict[str, Dict[str, None]] = {}

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> Dict[str, int]:
        """Create the notes root and build both derived stores from disk."""
        self.repository.ensure_ready()
        return self.rebuild_indexes()

    @traced("rebuild_indexes")
    def rebuild_indexes(self) -> Dict[str, int]:
        """Re-derive the search index and link graph from the stored notes.

        Also serves as a reconciliation pass after a derived-store update
        failed following a successful write.

        Returns:
            Counts of indexed notes and link edges.
        """
        notes = self.repository.list()
        self._titles_by_file = {note.title: {note.title: None} for note in notes}
        indexed = self.search_index.rebuild(notes)
        edges = self.link_graph.rebuild(notes)
        logger.info(f"Indexes rebuilt: {indexed} notes, {edges} links")
        return {"notes": indexed, "links": edges}

    @property
    def initialized(self) -> bool:
        return self.search_index.initialized

    def close(self) -> None:
        """Discard the derived stores. Nothing is flushed; disk is the truth."""
        self.search_index.clear()
        self.link_graph.clear()
        self._titles_by_file.clear()

    # =========================================================================
    # Note operations
    # =========================================================================

    @traced("save_note")
    def save_note(self, title: str, content: str) -> Note:
        """Create or replace a note.

        ``content`` is the raw header-plus-body text. Reserved header keys in
        it are ignored; other header keys replace the stored ones wholesale.

        Returns:
            The note as persisted, with its full stored text.

        Raises:
            NoteValidationError: If the title or content is unusable.
            InvalidPathError: If the title resolves outside the notes root.
            StorageUnavailableError: If the file could not be written.
        """
        self._validate(title, content)
        with self._get_note_lock(title):
            file_content = self.repository.put(Note(title=title, content=content))
            persisted = Note(title=title, content=file_content)

            self._drop_other_titles(title)
            self.search_index.update(persisted)
            self.link_graph.update_note_links(persisted)
            self.link_graph.restore_incoming(title)

        logger.info(f"Saved note {title!r}")
        return persisted

    @traced("update_note")
    def update_note(self, title: str, content: str) -> Optional[Note]:
        """Replace an existing note; return None if it does not exist."""
        with self._get_note_lock(title):
            if self.repository.get(title) is None:
                return None
            return self.save_note(title, content)

    @traced("get_note")
    def get_note(self, title: str) -> Optional[Note]:
        """Read a note straight from the store."""
        return self.repository.get(title)

    def get_note_with_links(self, title: str) -> Optional[NoteWithLinks]:
        """Read a note together with its outgoing links and backlinks."""
        note = self.get_note(title)
        if note is None:
            return None
        return NoteWithLinks(
            title=note.title,
            content=note.content,
            outgoing_links=self.get_outgoing_links(title),
            backlinks=self.get_backlinks(title),
        )

    @traced("delete_note")
    def delete_note(self, title: str) -> bool:
        """Delete a note and purge it from the derived stores.

        The derived stores are purged even when no file existed.

        Returns:
            True if a note file was removed, False otherwise.
        """
        with self._get_note_lock(title):
            existed = self.repository.delete(title)
            for key in self._forget_file(title):
                self.search_index.remove(key)
                self.link_graph.remove_all(key)

        if existed:
            logger.info(f"Deleted note {title!r}")
        return existed

    @traced("list_notes")
    def list_notes(self) -> List[Note]:
        """List every stored note (order unspecified)."""
        return self.repository.list()

    @traced("search_notes")
    def search_notes(self, query: str) -> List[Note]:
        """Search notes by title and body, best match first.

        An empty query lists every note instead.
        """
        if not query.strip():
            return self.list_notes()

        if not self.search_index.initialized:
            self.initialize()

        return self.search_index.search(query)

    # =========================================================================
    # Link queries
    # =========================================================================

    def get_outgoing_links(self, title: str) -> List[str]:
        return self.link_graph.outgoing(title)

    def get_backlinks(self, title: str) -> List[str]:
        return self.link_graph.backlinks(title)

    def get_all_link_relationships(self) -> List[LinkEdge]:
        return self.link_graph.all_relationships()

    # =========================================================================
    # Private helpers
    # =========================================================================

    @staticmethod
    def _validate(title: str, content: str) -> None:
        if not isinstance(title, str) or not title.strip():
            raise NoteValidationError(
                "Title cannot be empty", field="title", value=title
            )
        if not isinstance(content, str):
            raise NoteValidationError(
                "Content must be a string", field="content", value=type(content).__name__
            )

    def _file_title(self, title: str) -> str:
        return self.repository.resolver.sanitize(title) or title

    def _forget_file(self, title: str) -> List[str]:
        """Stop tracking the file ``title`` maps to; return every key it had.

        Notes loaded from disk are keyed by their file-name title, notes
        written through the service by the title as given. Several given
        titles can share one file.
        """
        file_title = self._file_title(title)
        keys = dict.fromkeys([title, file_title])
        keys.update(self._titles_by_file.pop(file_title, {}))
        return list(keys)

    def _drop_other_titles(self, title: str) -> None:
        """Purge entries the file of ``title`` had under any other title."""
        for key in self._forget_file(title):
            if key == title:
                continue
            self.search_index.remove(key)
            self.link_graph.set_outgoing(key, [])
        self._titles_by_file[self._file_title(title)] = {title: None}

    def _get_note_lock(self, title: str) -> threading.RLock:
        """Get or create the lock for the file ``title`` maps to.

        Uses WeakValueDictionary so locks are garbage collected when no longer
        held.
        """
        key = self._file_title(title)
        with self._note_locks_lock:
            lock = self._note_locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._note_locks[key] = lock
            return lock
