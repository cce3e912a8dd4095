"""Tabbed note session with debounced storage, undo history and text enrichment."""

from tabnote.api import EnrichmentApi
from tabnote.enrichment import EnrichmentOrchestrator
from tabnote.history import HistoryManager
from tabnote.protocols import BackingStoreProtocol, EnrichmentApiProtocol, SchedulerProtocol
from tabnote.session import SessionManager
from tabnote.store import PersistentStore

__all__ = [
    "BackingStoreProtocol",
    "EnrichmentApi",
    "EnrichmentApiProtocol",
    "EnrichmentOrchestrator",
    "HistoryManager",
    "PersistentStore",
    "SchedulerProtocol",
    "SessionManager",
]
