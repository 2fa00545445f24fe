"""Maps note titles to file locations inside the notes root."""
import logging
from pathlib import Path
from typing import Optional

from notetaker.config import config
from notetaker.exceptions import ErrorCode, InvalidPathError
from notetaker.utils import sanitize_title

logger = logging.getLogger(__name__)


class PathResolver:
    """Resolves titles to safe paths under a fixed notes root.

    Unsafe characters are stripped from the title before it becomes a file
    name, and the canonical candidate path must lie strictly inside the
    canonical root. Symlinks that escape the root are rejected as well.
    """

    def __init__(self, notes_dir: Path, extension: Optional[str] = None):
        self.notes_dir = Path(notes_dir)
        self.extension = extension or config.note_extension

    def sanitize(self, title: str) -> str:
        """Return the file-name form of ``title``."""
        return sanitize_title(title)

    def resolve(self, title: str) -> Path:
        """Resolve a title to the path of its note file.

        Raises:
            InvalidPathError: If the sanitized title is empty or the
                resolved path is not inside the notes root.
        """
        safe_title = self.sanitize(title)
        if not safe_title:
            raise InvalidPathError(
                title,
                message="Invalid note title: nothing left after sanitization",
                code=ErrorCode.INVALID_TITLE,
            )

        root = self.notes_dir.resolve()
        candidate = (root / f"{safe_title}{self.extension}").resolve()
        if candidate == root or root not in candidate.parents:
            logger.warning(f"Rejected note path outside notes root for title {title!r}")
            raise InvalidPathError(title)

        return candidate

    def title_for(self, path: Path) -> str:
        """Recover the (sanitized) title a note file was stored under."""
        return path.name[: -len(self.extension)]

    def is_note_file(self, path: Path) -> bool:
        """Check whether ``path`` looks like a note file in the root."""
        return (
            path.name.endswith(self.extension)
            and len(path.name) > len(self.extension)
            and path.is_file()
        )
