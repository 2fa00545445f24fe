"""Repository for note storage and retrieval.

The note files on disk are the single source of truth. Every other view of
the notes (search index, link graph) is derived from what this layer reads
and writes.
"""

import datetime
import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, List, Optional

from notetaker.config import config
from notetaker.exceptions import (
    ErrorCode,
    NoteParseError,
    NoteValidationError,
    StorageUnavailableError,
)
from notetaker.models.schema import Note, local_now
from notetaker.storage.metadata_merger import MetadataMerger
from notetaker.storage.path_resolver import PathResolver

logger = logging.getLogger(__name__)


class NoteRepository:
    """File-backed note store.

    One file per note inside ``notes_dir``, named after the sanitized title.
    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so readers see either the old or the new
    content, never a partial file.
    """

    def __init__(
        self,
        notes_dir: Optional[Path] = None,
        extension: Optional[str] = None,
        clock: Callable[[], datetime.datetime] = local_now,
    ):
        """Initialize the repository.

        Args:
            notes_dir: Directory containing the note files.
                       If None, uses config.notes_dir.
            extension: Note file extension. If None, uses config.note_extension.
            clock: Returns the current local time; used for header timestamps.
        """
        self.notes_dir = (
            config.get_absolute_path(notes_dir)
            if notes_dir
            else config.get_notes_dir()
        )
        self.resolver = PathResolver(self.notes_dir, extension)
        self.merger = MetadataMerger()
        self._clock = clock

    def ensure_ready(self) -> None:
        """Create the notes root if it does not exist yet."""
        try:
            self.notes_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                "Failed to create notes directory",
                operation="ensure_ready",
                path=str(self.notes_dir),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e

    def list(self) -> List[Note]:
        """Read every note file in the root.

        Titles are recovered from file names. Files that cannot be read, or
        whose name leaves a blank title, are logged and skipped rather than
        aborting the listing.
        """
        self.ensure_ready()
        try:
            paths = sorted(self.notes_dir.iterdir())
        except OSError as e:
            raise StorageUnavailableError(
                "Failed to list notes directory",
                operation="list",
                path=str(self.notes_dir),
                original_error=e,
            ) from e

        notes: List[Note] = []
        failed_files: List[str] = []
        for file_path in paths:
            if not self.resolver.is_note_file(file_path):
                continue
            title = self.resolver.title_for(file_path)
            if not title.strip():
                logger.error(f"Cannot use file {file_path.name!r}: blank note title")
                failed_files.append(file_path.name)
                continue
            try:
                content = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Cannot read file {file_path.name}: {e}")
                failed_files.append(file_path.name)
                continue
            notes.append(Note(title=title, content=content))

        if failed_files:
            logger.warning(
                f"Skipped {len(failed_files)} unusable files: "
                f"{failed_files[:5]}{'...' if len(failed_files) > 5 else ''}"
            )
        return notes

    def get(self, title: str) -> Optional[Note]:
        """Read one note, or return None if it does not exist.

        The returned note carries ``title`` exactly as given, even when the
        file name is its sanitized form.

        Raises:
            InvalidPathError: If the title cannot be resolved safely.
            StorageUnavailableError: If the file exists but cannot be read.
        """
        file_path = self.resolver.resolve(title)
        content = self._read_file(file_path)
        if content is None:
            return None
        return Note(title=title, content=content)

    def put(self, note: Note) -> str:
        """Write a note and return the exact text stored on disk.

        The caller's header is merged with the existing header per
        :meth:`MetadataMerger.merge`: ``createdAt`` survives from the stored
        note, ``updatedAt`` is refreshed and user fields are fully replaced.

        Raises:
            InvalidPathError: If the title cannot be resolved safely.
            NoteValidationError: If the incoming header block is malformed.
            StorageUnavailableError: If reading or writing the file fails.
        """
        file_path = self.resolver.resolve(note.title)
        self.ensure_ready()

        try:
            incoming_header, body = self.merger.split(note.content)
        except NoteParseError as e:
            raise NoteValidationError(
                f"Invalid header block: {e.message}",
                field="content",
                value=note.title,
            ) from e

        existing_header = None
        existing_content = self._read_file(file_path)
        if existing_content is not None:
            try:
                existing_header, _ = self.merger.split(existing_content)
            except NoteParseError as e:
                logger.warning(
                    f"Existing note {file_path.name} has an unreadable header, "
                    f"createdAt will be reset: {e}"
                )

        header = self.merger.merge(
            existing_header,
            incoming_header,
            self.resolver.sanitize(note.title),
            self._clock(),
        )
        file_content = self.merger.join(header, body)
        self._write_file(file_path, file_content)
        logger.debug(f"Stored note {note.title!r} at {file_path.name}")
        return file_content

    def delete(self, title: str) -> bool:
        """Delete a note file.

        Returns:
            True if a file was removed, False if there was nothing to remove.

        Raises:
            InvalidPathError: If the title cannot be resolved safely.
            StorageUnavailableError: If the file exists but cannot be removed.
        """
        file_path = self.resolver.resolve(title)
        try:
            file_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageUnavailableError(
                f"Failed to delete note {title!r}",
                operation="delete",
                path=str(file_path),
                code=ErrorCode.STORAGE_DELETE_FAILED,
                original_error=e,
            ) from e
        logger.debug(f"Deleted note file {file_path.name}")
        return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_file(file_path: Path) -> Optional[str]:
        try:
            return file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageUnavailableError(
                "Failed to read note file",
                operation="read",
                path=str(file_path),
                original_error=e,
            ) from e

    @staticmethod
    def _write_file(file_path: Path, content: str) -> None:
        tmp_path = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=file_path.parent, prefix=".", suffix=".tmp"
            )
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, file_path)
        except OSError as e:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
            raise StorageUnavailableError(
                "Failed to write note file",
                operation="write",
                path=str(file_path),
                code=ErrorCode.STORAGE_WRITE_FAILED,
                original_error=e,
            ) from e
