"""Header block parsing, serialization and merging for stored notes.

A stored note is a YAML header between two ``---`` marker lines followed by
the free-text body. Parsing keeps the body byte-for-byte, so
``split(join(header, body))`` returns the same header and the exact body.
"""
import datetime
import logging
import re
from typing import Any, Dict, Optional, Tuple

import yaml
from frontmatter.default_handlers import YAMLHandler

from notetaker.exceptions import NoteParseError
from notetaker.models.schema import RESERVED_FIELDS, format_timestamp

logger = logging.getLogger(__name__)

HEADER_MARKER = "---"

_HEADER_BLOCK = re.compile(
    r"\A---[ \t]*\r?\n(?P<header>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


class _HeaderDumper(yaml.SafeDumper):
    """Block-style mappings with lists written inline as ``[a, b]``."""


def _represent_inline_list(dumper, data):
    return dumper.represent_sequence("tag:yaml.org,2002:seq", data, flow_style=True)


_HeaderDumper.add_representer(list, _represent_inline_list)


class MetadataMerger:
    """Splits, joins and merges note header blocks."""

    def __init__(self):
        self._handler = YAMLHandler()

    def split(self, raw_text: str) -> Tuple[Dict[str, Any], str]:
        """Split raw note text into its header mapping and body.

        Text without a header block is all body.

        Raises:
            NoteParseError: If the header is not valid YAML or not a mapping.
        """
        match = _HEADER_BLOCK.match(raw_text)
        if not match:
            return {}, raw_text

        header_text = match.group("header")
        try:
            header = self._handler.load(header_text) if header_text.strip() else {}
        except yaml.YAMLError as e:
            raise NoteParseError("Malformed header block", original_error=e) from e

        if header is None:
            header = {}
        if not isinstance(header, dict):
            raise NoteParseError(
                f"Header block must be a mapping, got {type(header).__name__}"
            )
        return header, raw_text[match.end():]

    def join(self, header: Dict[str, Any], body: str) -> str:
        """Serialize a header mapping and body into raw note text.

        List values are written in the inline ``[a, b]`` form and keys keep
        their insertion order.
        """
        header_text = self._handler.export(
            header, Dumper=_HeaderDumper, sort_keys=False
        ) if header else ""
        lines = [HEADER_MARKER]
        if header_text:
            lines.append(header_text)
        lines.append(HEADER_MARKER)
        return "\n".join(lines) + "\n" + body

    def merge(
        self,
        existing_header: Optional[Dict[str, Any]],
        incoming_header: Dict[str, Any],
        title: str,
        now: datetime.datetime,
    ) -> Dict[str, Any]:
        """Build the header to store from the caller's header.

        Reserved keys in ``incoming_header`` are discarded. ``createdAt`` is
        carried over from ``existing_header`` when present, ``updatedAt`` is
        always ``now``, and ``title`` is always ``title``. Non-reserved keys
        come only from ``incoming_header``; existing user keys are not kept.
        """
        dropped = [key for key in incoming_header if key in RESERVED_FIELDS]
        if dropped:
            logger.debug(f"Discarding reserved header keys from input: {dropped}")

        timestamp = format_timestamp(now)
        created_at = (existing_header or {}).get("createdAt") or timestamp

        merged: Dict[str, Any] = {
            "title": title,
            "createdAt": created_at,
            "updatedAt": timestamp,
        }
        for key, value in incoming_header.items():
            if key not in RESERVED_FIELDS:
                merged[key] = value
        return merged
