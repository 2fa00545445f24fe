"""In-memory full-text search index for notes.

An inverted index over two fields, ``title`` and ``body``, with BM25-style
scoring. A query term matches indexed terms exactly, by prefix, or within a
small edit distance. Notes whose title matches a query term always rank
ahead of notes that only match in the body.
"""
import logging
import math
import re
from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from notetaker.config import config
from notetaker.exceptions import NoteParseError
from notetaker.models.schema import Note
from notetaker.storage.metadata_merger import MetadataMerger

logger = logging.getLogger(__name__)

FIELDS = ("title", "body")

_TOKEN = re.compile(r"\w+", re.UNICODE)

# BM25 parameters
_K1 = 1.2
_B = 0.7

# Relative weight of non-exact term matches
_PREFIX_WEIGHT = 0.375
_FUZZY_WEIGHT = 0.45

# Upper bound on tolerated edits regardless of term length
_MAX_EDITS = 2


def tokenize(text: str) -> List[str]:
    """Lowercase ``text`` and split it into word tokens."""
    return [token.lower() for token in _TOKEN.findall(text)]


class SearchIndex:
    """Incremental inverted index keyed by note title.

    The index starts uninitialized: until :meth:`rebuild` runs, mutations
    are ignored and searches return nothing.
    """

    def __init__(
        self,
        title_boost: Optional[float] = None,
        fuzzy: Optional[float] = None,
        prefix: Optional[bool] = None,
    ):
        self.title_boost = config.title_boost if title_boost is None else title_boost
        self.fuzzy = config.fuzzy if fuzzy is None else fuzzy
        self.prefix = config.prefix_search if prefix is None else prefix
        self._merger = MetadataMerger()
        self._initialized = False
        self._reset()

    def _reset(self) -> None:
        self._documents: Dict[str, Note] = {}
        # field -> term -> title -> term frequency
        self._postings: Dict[str, Dict[str, Dict[str, int]]] = {
            field: defaultdict(dict) for field in FIELDS
        }
        # title -> field -> token count
        self._field_lengths: Dict[str, Dict[str, int]] = {}
        self._total_lengths: Dict[str, int] = {field: 0 for field in FIELDS}

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def document_count(self) -> int:
        return len(self._documents)

    def has(self, title: str) -> bool:
        return title in self._documents

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def rebuild(self, notes: Iterable[Note]) -> int:
        """Clear the index and index ``notes``.

        Returns:
            Number of notes indexed.
        """
        self._reset()
        self._initialized = True
        for note in notes:
            self._index(note)
        logger.info(f"Search index rebuilt with {self.document_count} notes")
        return self.document_count

    def add(self, note: Note) -> None:
        """Index a note, replacing any previous entry with the same title."""
        if not self._initialized:
            logger.debug(f"Search index not initialized, ignoring add of {note.title!r}")
            return
        self._discard(note.title)
        self._index(note)

    def remove(self, title: str) -> None:
        """Drop a note from the index. Unknown titles are ignored."""
        if not self._initialized:
            return
        self._discard(title)

    def update(self, note: Note) -> None:
        """Re-index a note (remove, then add)."""
        if not self._initialized:
            return
        self.remove(note.title)
        self.add(note)

    def clear(self) -> None:
        """Discard all entries and return to the uninitialized state."""
        self._reset()
        self._initialized = False

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search(self, query: str) -> List[Note]:
        """Find notes matching any term of ``query``, best match first.

        Empty or whitespace-only queries return no results, as does an
        index that has not been initialized.
        """
        if not self._initialized or not query.strip():
            return []

        query_terms = list(dict.fromkeys(tokenize(query)))
        if not query_terms:
            return []

        scores: Dict[str, float] = defaultdict(float)
        title_hits: Counter = Counter()
        term_hits: Dict[str, set] = defaultdict(set)

        for query_term in query_terms:
            title_matched = set()
            for field in FIELDS:
                boost = self.title_boost if field == "title" else 1.0
                for term, weight in self._expand(field, query_term):
                    postings = self._postings[field][term]
                    idf = self._idf(term)
                    for title, tf in postings.items():
                        scores[title] += boost * weight * idf * self._tf_score(
                            tf, self._field_lengths[title][field], field
                        )
                        term_hits[title].add(query_term)
                        if field == "title":
                            title_matched.add(title)
            title_hits.update(title_matched)

        # Notes matching more of the query terms score higher
        ranked: List[Tuple[int, float, str]] = [
            (title_hits[title], score * len(term_hits[title]), title)
            for title, score in scores.items()
        ]
        ranked.sort(key=lambda item: (-item[0], -item[1], item[2]))
        return [self._documents[title] for _, _, title in ranked]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _index(self, note: Note) -> None:
        field_tokens = {
            "title": tokenize(note.title),
            "body": tokenize(self._body_of(note)),
        }
        self._documents[note.title] = note
        self._field_lengths[note.title] = {}
        for field, tokens in field_tokens.items():
            self._field_lengths[note.title][field] = len(tokens)
            self._total_lengths[field] += len(tokens)
            for term, tf in Counter(tokens).items():
                self._postings[field][term][note.title] = tf

    def _discard(self, title: str) -> None:
        if title not in self._documents:
            return
        note = self._documents.pop(title)
        lengths = self._field_lengths.pop(title)
        field_tokens = {
            "title": tokenize(note.title),
            "body": tokenize(self._body_of(note)),
        }
        for field, tokens in field_tokens.items():
            self._total_lengths[field] -= lengths[field]
            for term in set(tokens):
                postings = self._postings[field].get(term)
                if postings is None:
                    continue
                postings.pop(title, None)
                if not postings:
                    del self._postings[field][term]

    def _body_of(self, note: Note) -> str:
        try:
            _, body = self._merger.split(note.content)
        except NoteParseError:
            logger.debug(f"Indexing raw content of {note.title!r}: unparseable header")
            return note.content
        return body

    def _expand(self, field: str, query_term: str) -> List[Tuple[str, float]]:
        """Indexed terms in ``field`` matching ``query_term``, with weights."""
        postings = self._postings[field]
        matches: List[Tuple[str, float]] = []
        if query_term in postings:
            matches.append((query_term, 1.0))

        max_edits = self._max_edits(query_term)
        for term in postings:
            if term == query_term:
                continue
            if self.prefix and term.startswith(query_term):
                matches.append(
                    (term, _PREFIX_WEIGHT * len(query_term) / len(term))
                )
                continue
            if max_edits and abs(len(term) - len(query_term)) <= max_edits:
                distance = Levenshtein.distance(
                    query_term, term, score_cutoff=max_edits
                )
                if distance <= max_edits:
                    matches.append(
                        (term, _FUZZY_WEIGHT * len(term) / (len(term) + distance))
                    )
        return matches

    def _max_edits(self, query_term: str) -> int:
        if not self.fuzzy or len(query_term) < 3:
            return 0
        return min(_MAX_EDITS, max(1, round(len(query_term) * self.fuzzy)))

    def _idf(self, term: str) -> float:
        titles = set()
        for field in FIELDS:
            titles.update(self._postings[field].get(term, ()))
        df = len(titles)
        n = self.document_count
        return math.log(1 + (n - df + 0.5) / (df + 0.5))

    def _tf_score(self, tf: int, field_length: int, field: str) -> float:
        avg_length = self._total_lengths[field] / max(1, self.document_count)
        if avg_length == 0:
            avg_length = 1
        norm = 1 - _B + _B * field_length / avg_length
        return tf * (_K1 + 1) / (tf + _K1 * norm)
