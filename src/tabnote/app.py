"""Wire the store, enrichment orchestrator and session together."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from tabnote.api import EnrichmentApi
from tabnote.config import DATABASE_FILENAME
from tabnote.core.database.schema import SqliteBackingStore
from tabnote.enrichment import EnrichmentOrchestrator
from tabnote.protocols import BackingStoreProtocol, EnrichmentApiProtocol, SchedulerProtocol
from tabnote.session import SessionManager
from tabnote.store import PersistentStore


@dataclass
class NoteApp:
    """One editing session and its collaborators."""

    store: PersistentStore
    orchestrator: EnrichmentOrchestrator
    session: SessionManager


def build_app(
    backing: BackingStoreProtocol,
    api: EnrichmentApiProtocol,
    scheduler: SchedulerProtocol,
) -> NoteApp:
    store = PersistentStore(backing, scheduler)
    orchestrator = EnrichmentOrchestrator(store, api, scheduler)
    session = SessionManager(store, orchestrator)
    return NoteApp(store=store, orchestrator=orchestrator, session=session)


def open_app(
    data_dir: Path,
    loop: asyncio.AbstractEventLoop,
    *,
    api: EnrichmentApiProtocol | None = None,
) -> tuple[NoteApp, SqliteBackingStore]:
    """Open the session stored in data_dir, scheduling timers on loop."""
    backing = SqliteBackingStore.open(data_dir, DATABASE_FILENAME)
    return build_app(backing, api or EnrichmentApi(), loop), backing


def wait_for_enrichment(app: NoteApp, loop: asyncio.AbstractEventLoop, *, tick: float = 0.1) -> None:
    """Run the event loop until no enrichment job is in flight."""
    while app.orchestrator.in_flight:
        loop.run_until_complete(asyncio.sleep(tick))
