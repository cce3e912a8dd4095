"""Shared test fixtures."""

import pytest

from tabnote.app import NoteApp, build_app
from tabnote.store import PersistentStore
from tests.unit.fakes import FakeBackingStore, FakeEnrichmentApi, FakeScheduler


@pytest.fixture
def backing() -> FakeBackingStore:
    return FakeBackingStore()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def fake_api() -> FakeEnrichmentApi:
    return FakeEnrichmentApi()


@pytest.fixture
def store(backing: FakeBackingStore, scheduler: FakeScheduler) -> PersistentStore:
    return PersistentStore(backing, scheduler)


@pytest.fixture
def note_app(
    backing: FakeBackingStore, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> NoteApp:
    """A fresh session with one empty document and an API key configured."""
    app = build_app(backing, fake_api, scheduler)
    app.orchestrator.preferences.api_key = "secret"
    return app
