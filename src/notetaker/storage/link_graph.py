"""In-memory link graph built from inline ``[[Target]]`` references.

The graph keeps forward adjacency (outgoing links per title) and reverse
adjacency (backlinks per title) as a pair: for all titles T and S,
``S in backlinks(T)`` exactly when ``T in outgoing(S)``.
"""
import logging
import re
from typing import Dict, Iterable, List, Optional

from notetaker.exceptions import NoteParseError
from notetaker.models.schema import LinkEdge, Note, NoteLink
from notetaker.storage.metadata_merger import MetadataMerger

logger = logging.getLogger(__name__)

NOTE_LINK_PATTERN = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")


def parse_note_links(content: str) -> List[NoteLink]:
    """Parse ``[[Note Title]]`` and ``[[Note Title|Display Text]]`` references."""
    links: List[NoteLink] = []
    for match in NOTE_LINK_PATTERN.finditer(content):
        display_text = match.group(2)
        links.append(
            NoteLink(
                target=match.group(1).strip(),
                display_text=display_text.strip() if display_text else None,
                start_pos=match.start(),
                end_pos=match.end(),
            )
        )
    return links


def has_note_links(content: str) -> bool:
    """Check if a string contains any note references."""
    return NOTE_LINK_PATTERN.search(content) is not None


def is_valid_link_target(target: str) -> bool:
    """A target must be non-empty and free of path separators and ``..``."""
    return (
        len(target.strip()) > 0
        and ".." not in target
        and "/" not in target
        and "\\" not in target
    )


def extract_outgoing_links(note_title: str, body: str) -> List[LinkEdge]:
    """Extract valid outgoing edges from a note body.

    Invalid targets come from free-text content and are dropped silently.
    """
    edges: List[LinkEdge] = []
    for link in parse_note_links(body):
        if not is_valid_link_target(link.target):
            logger.debug(f"Dropping invalid link target {link.target!r} in {note_title!r}")
            continue
        edges.append(
            LinkEdge(
                from_note=note_title,
                to_note=link.target,
                display_text=link.display_text,
            )
        )
    return edges


class LinkGraph:
    """Directed graph of note references keyed by title.

    Targets need not exist as notes; links may point at notes that have not
    been written yet.
    """

    def __init__(self):
        self._merger = MetadataMerger()
        # from title -> {to title: label}; dicts keep first-seen order
        self._outgoing: Dict[str, Dict[str, Optional[str]]] = {}
        # to title -> {from title: None}
        self._backlinks: Dict[str, Dict[str, None]] = {}
        # from title -> {to title: label} as last parsed from its body; kept
        # when a target is removed so the edge can come back with the target
        self._parsed: Dict[str, Dict[str, Optional[str]]] = {}

    def set_outgoing(
        self,
        from_title: str,
        targets: Iterable[str],
        labels: Optional[Dict[str, Optional[str]]] = None,
    ) -> None:
        """Replace every outgoing edge of ``from_title``.

        Targets that are no longer present lose ``from_title`` from their
        backlinks; new targets gain it. Invalid targets are dropped.
        """
        labels = labels or {}
        new_targets: Dict[str, Optional[str]] = {}
        for target in targets:
            if not is_valid_link_target(target):
                logger.debug(f"Dropping invalid link target {target!r} in {from_title!r}")
                continue
            if target not in new_targets:
                new_targets[target] = labels.get(target)

        self._remove_outgoing(from_title)
        if not new_targets:
            self._parsed.pop(from_title, None)
            return

        self._parsed[from_title] = dict(new_targets)
        self._outgoing[from_title] = new_targets
        for target in new_targets:
            self._backlinks.setdefault(target, {})[from_title] = None

    def update_note_links(self, note: Note) -> None:
        """Re-derive a note's outgoing edges from its body.

        The header block is not scanned. Content with an unparseable header
        is scanned whole.
        """
        try:
            _, body = self._merger.split(note.content)
        except NoteParseError:
            body = note.content
        edges = extract_outgoing_links(note.title, body) if has_note_links(body) else []
        labels: Dict[str, Optional[str]] = {}
        for edge in edges:
            labels.setdefault(edge.to_note, edge.display_text)
        self.set_outgoing(note.title, [edge.to_note for edge in edges], labels)

    def remove_all(self, title: str) -> None:
        """Remove ``title`` as a source and as a target everywhere."""
        self._remove_outgoing(title)
        self._parsed.pop(title, None)
        sources = self._backlinks.pop(title, {})
        for source in sources:
            targets = self._outgoing.get(source)
            if targets is None:
                continue
            targets.pop(title, None)
            if not targets:
                del self._outgoing[source]

    def restore_incoming(self, title: str) -> int:
        """Re-add edges to ``title`` from notes whose bodies still reference it.

        Used when a removed note is written again. Each restored source keeps
        the target order of its body.

        Returns:
            Number of edges restored.
        """
        restored = 0
        for source, parsed in self._parsed.items():
            current = self._outgoing.get(source, {})
            if title not in parsed or title in current:
                continue
            self._outgoing[source] = {
                target: label
                for target, label in parsed.items()
                if target in current or target == title
            }
            self._backlinks.setdefault(title, {})[source] = None
            restored += 1
        if restored:
            logger.debug(f"Restored {restored} links to {title!r}")
        return restored

    def rebuild(self, notes: Iterable[Note]) -> int:
        """Clear the graph and derive it from ``notes``.

        Returns:
            Number of edges in the rebuilt graph.
        """
        self.clear()
        for note in notes:
            self.update_note_links(note)
        edge_count = sum(len(targets) for targets in self._outgoing.values())
        logger.info(f"Link graph rebuilt with {edge_count} edges")
        return edge_count

    def clear(self) -> None:
        self._outgoing.clear()
        self._backlinks.clear()
        self._parsed.clear()

    def outgoing(self, title: str) -> List[str]:
        return list(self._outgoing.get(title, {}))

    def backlinks(self, title: str) -> List[str]:
        return list(self._backlinks.get(title, {}))

    def label(self, from_title: str, to_title: str) -> Optional[str]:
        """Display label of the first reference from one note to another."""
        return self._outgoing.get(from_title, {}).get(to_title)

    def all_relationships(self) -> List[LinkEdge]:
        return [
            LinkEdge(from_note=source, to_note=target, display_text=label)
            for source, targets in self._outgoing.items()
            for target, label in targets.items()
        ]

    def _remove_outgoing(self, from_title: str) -> None:
        old_targets = self._outgoing.pop(from_title, None)
        if not old_targets:
            return
        for target in old_targets:
            sources = self._backlinks.get(target)
            if sources is None:
                continue
            sources.pop(from_title, None)
            if not sources:
                del self._backlinks[target]
