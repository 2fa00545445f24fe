"""Configuration module for the notetaker package."""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from the project root .env file.
# Anchored to __file__ so it works regardless of the process CWD.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
load_dotenv(_PROJECT_ROOT / ".env")

# User-level config lives alongside the notes
_USER_ENV = Path.home() / ".notetaker-mcp" / ".env"
load_dotenv(_USER_ENV)


logger = logging.getLogger(__name__)

DEFAULT_NOTES_DIR = Path.home() / ".notetaker-mcp" / "notes"


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class NotetakerConfig(BaseModel):
    """Configuration for the note store and its derived indexes."""

    # Base directory for resolving relative paths
    base_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("NOTETAKER_BASE_DIR", "."))
    )
    # Storage configuration
    notes_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("NOTETAKER_NOTES_DIR", str(DEFAULT_NOTES_DIR))
        )
    )
    note_extension: str = Field(
        default_factory=lambda: os.getenv("NOTETAKER_NOTE_EXTENSION", ".md")
    )
    # Search configuration
    title_boost: float = Field(
        default_factory=lambda: float(os.getenv("NOTETAKER_TITLE_BOOST", "2.0"))
    )
    # Fraction of a query term's length tolerated as edit distance
    fuzzy: float = Field(
        default_factory=lambda: float(os.getenv("NOTETAKER_FUZZY", "0.2"))
    )
    prefix_search: bool = Field(
        default_factory=lambda: _env_flag("NOTETAKER_PREFIX_SEARCH", "true")
    )
    # Logging configuration
    log_level: str = Field(
        default_factory=lambda: os.getenv("NOTETAKER_LOG_LEVEL", "INFO")
    )
    log_dir: Optional[Path] = Field(
        default_factory=lambda: (
            Path(os.getenv("NOTETAKER_LOG_DIR"))
            if os.getenv("NOTETAKER_LOG_DIR")
            else None
        )
    )

    model_config = {"validate_assignment": True}

    @model_validator(mode="after")
    def _validate_search_config(self) -> "NotetakerConfig":
        """Reject settings the store and index cannot work with."""
        if not self.note_extension.startswith(".") or len(self.note_extension) < 2:
            raise ValueError("note_extension must start with '.' (e.g. '.md')")
        if self.title_boost <= 0:
            raise ValueError("title_boost must be > 0")
        if not 0 <= self.fuzzy < 1:
            raise ValueError("fuzzy must be in the range [0, 1)")
        return self

    def get_absolute_path(self, path: Path) -> Path:
        """Convert a relative path to an absolute path based on base_dir."""
        path = Path(path).expanduser()
        if path.is_absolute():
            return path
        return self.base_dir.expanduser() / path

    def get_notes_dir(self) -> Path:
        """Get the absolute notes root."""
        return self.get_absolute_path(self.notes_dir)


# Create a global config instance
config = NotetakerConfig()
