"""Data models for the notetaker package."""

import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# Header timestamps are naive local time at minute precision. No timezone is
# stored, so a note written in one timezone and read in another cannot be
# placed on an absolute timeline.
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

# Header keys managed by the store; callers cannot set them
RESERVED_FIELDS = ("title", "createdAt", "updatedAt")


def local_now() -> datetime.datetime:
    """Get the current local time as a naive datetime."""
    return datetime.datetime.now()


def format_timestamp(value: datetime.datetime) -> str:
    """Format a datetime as a header timestamp (``YYYY-MM-DD HH:MM``)."""
    return value.strftime(TIMESTAMP_FORMAT)


class Note(BaseModel):
    """A stored note.

    ``content`` is the full stored text: the header block followed by the
    body. Header fields and body are derived from it on demand.
    """

    title: str = Field(..., description="Title of the note (its only identifier)")
    content: str = Field(..., description="Raw file content including the header block")

    model_config = {"validate_assignment": True, "extra": "forbid"}

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Validate that the title is not empty."""
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v


class NoteWithLinks(Note):
    """A note together with its link relationships."""

    outgoing_links: List[str] = Field(
        default_factory=list, description="Titles this note links to"
    )
    backlinks: List[str] = Field(
        default_factory=list, description="Titles of notes linking to this note"
    )


class NoteLink(BaseModel):
    """An inline ``[[Target]]`` or ``[[Target|Label]]`` reference in a body."""

    target: str = Field(..., description="Referenced note title")
    display_text: Optional[str] = Field(
        default=None, description="Optional label after the pipe"
    )
    start_pos: int = Field(..., description="Offset of the opening brackets")
    end_pos: int = Field(..., description="Offset just past the closing brackets")

    model_config = {"frozen": True}


class LinkEdge(BaseModel):
    """A directed edge between two note titles."""

    from_note: str = Field(..., description="Title of the linking note")
    to_note: str = Field(..., description="Title of the linked note")
    display_text: Optional[str] = Field(
        default=None, description="Optional label of the reference"
    )

    model_config = {"frozen": True, "extra": "forbid"}
