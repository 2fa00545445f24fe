"""Common test fixtures for the notetaker package."""

import datetime
import tempfile
from pathlib import Path

import pytest

from notetaker.config import config
from notetaker.observability import metrics
from notetaker.services.note_service import NoteService
from notetaker.storage.link_graph import LinkGraph
from notetaker.storage.note_repository import NoteRepository
from notetaker.storage.search_index import SearchIndex


class FakeClock:
    """Deterministic clock for header timestamps."""

    def __init__(self, start: datetime.datetime = datetime.datetime(2024, 3, 1, 9, 30)):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += datetime.timedelta(**kwargs)


@pytest.fixture
def notes_dir():
    """Create a temporary notes root."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp) / "notes"


@pytest.fixture
def test_config(notes_dir, monkeypatch):
    """Point the global config at the temporary notes root."""
    monkeypatch.setattr(config, "notes_dir", notes_dir)
    yield config


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def note_repository(notes_dir, clock):
    """Create a test note repository."""
    repository = NoteRepository(notes_dir=notes_dir, clock=clock)
    repository.ensure_ready()
    yield repository


@pytest.fixture
def note_service(note_repository):
    """Create an initialized NoteService with its own derived stores."""
    service = NoteService(
        repository=note_repository,
        search_index=SearchIndex(title_boost=2.0, fuzzy=0.2, prefix=True),
        link_graph=LinkGraph(),
    )
    service.initialize()
    yield service
    service.close()


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset()
    yield
