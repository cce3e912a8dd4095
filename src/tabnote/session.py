"""Multi-document ("tab") session over the persistent store."""

import json
import time
from dataclasses import replace

from loguru import logger

from tabnote.config import (
    CURRENT_TAB_INDEX_KEY,
    LEGACY_NOTE_KEY,
    TABS_KEY,
    UNTITLED_TITLE,
)
from tabnote.enrichment import EnrichmentOrchestrator, result_key_prefix
from tabnote.history import HistoryManager
from tabnote.models.document import Document
from tabnote.store import PersistentStore


class SessionManager:
    """Own the ordered documents, the active pointer, and per-document history.

    Document metadata is persisted as one list under ``tabs``; each document's
    text is persisted under its own id. ``text`` is the editor buffer of the
    active document.
    """

    def __init__(self, store: PersistentStore, orchestrator: EnrichmentOrchestrator) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self.documents: list[Document] = []
        self.active_index = -1
        self.text = ""
        self.line_count = 1
        self._histories: dict[str, HistoryManager] = {}

        orchestrator.text_provider = lambda: self.text
        self._restore()

    @property
    def active_document(self) -> Document:
        return self.documents[self.active_index]

    def history(self, document_id: str) -> HistoryManager:
        return self._histories[document_id]

    def create_document(self) -> Document:
        if self.active_index != -1:
            self._store.write(self.active_document.id, self.text)

        document = Document(id=self._new_id(), title=f"Note {len(self.documents) + 1}")
        self.documents.append(document)
        self._histories[document.id] = HistoryManager()
        self._persist_documents()
        logger.info("Created document {!r} ({})", document.title, document.id)

        self.switch_to(len(self.documents) - 1)
        return document

    def switch_to(self, index: int) -> None:
        self._check_index(index)
        if index == self.active_index:
            return

        if self.active_index != -1:
            outgoing = self.active_document
            self._store.write(outgoing.id, self.text)
            self._histories[outgoing.id].push_state(self.text)

        self.active_index = index
        incoming = self.active_document
        history = self._histories.get(incoming.id)
        if history is not None:
            self.text = history.current
        else:
            self.text = self._store.read(incoming.id, "") or ""
            self._histories[incoming.id] = HistoryManager(self.text)

        self._orchestrator.set_active_document(incoming.id)
        self._update_line_count()
        self._persist_session()

    def close_document(self, index: int) -> bool:
        """Close a document and delete everything stored for it.

        Returns False, leaving the session untouched, when it is the last one.
        """
        self._check_index(index)
        if len(self.documents) == 1:
            logger.warning("Refusing to close the last document")
            return False

        closed = self.documents[index]
        was_active = index == self.active_index
        if was_active:
            self._store.write(closed.id, self.text)
            self._orchestrator.clear_panel_for(closed.id)
        else:
            self._store.write(self.active_document.id, self.text)
            self._histories[self.active_document.id].push_state(self.text)

        del self.documents[index]
        self._histories.pop(closed.id, None)
        self._store.remove(closed.id)
        for key in self._store.keys_with_prefix(result_key_prefix(closed.id)):
            self._store.remove(key)
        self._orchestrator.forget_document(closed.id)

        if was_active:
            new_index = index if index < len(self.documents) else len(self.documents) - 1
        elif index < self.active_index:
            new_index = self.active_index - 1
        else:
            new_index = self.active_index

        logger.info("Closed document {!r} ({})", closed.title, closed.id)
        self.active_index = new_index
        self._persist_session()

        # The document at new_index is not the one whose text is in the buffer
        # anymore (or its index moved), so reload it from scratch.
        self.active_index = -1
        self.switch_to(new_index)
        return True

    def rename_document(self, index: int, new_title: str) -> Document:
        self._check_index(index)
        title = new_title.strip() or UNTITLED_TITLE
        self.documents[index] = replace(self.documents[index], title=title)
        self._persist_documents()
        return self.documents[index]

    def content_changed(self, text: str) -> None:
        """Record an edit of the active document's text."""
        self._histories[self.active_document.id].push_state(text)
        self.text = text
        self._store.write(self.active_document.id, text)
        self._update_line_count()

    def undo(self) -> str | None:
        return self._restore_from(self._histories[self.active_document.id].undo())

    def redo(self) -> str | None:
        return self._restore_from(self._histories[self.active_document.id].redo())

    def _restore_from(self, text: str | None) -> str | None:
        if text is None:
            return None
        # The restored text is applied here, so consume the suppressed push now
        # rather than swallowing the next real edit.
        self._histories[self.active_document.id].push_state(text)
        self.text = text
        self._store.write(self.active_document.id, text)
        self._update_line_count()
        return text

    def _restore(self) -> None:
        documents = self._load_documents()
        if not documents:
            legacy = self._store.read(LEGACY_NOTE_KEY)
            self.create_document()
            if legacy:
                logger.info("Migrating single-note content into {!r}", self.active_document.title)
                self._histories[self.active_document.id] = HistoryManager(legacy)
                self.text = legacy
                self._store.write(self.active_document.id, legacy)
                self._store.remove(LEGACY_NOTE_KEY)
                self._update_line_count()
            return

        self.documents = documents
        for document in documents:
            self._histories[document.id] = HistoryManager(self._store.read(document.id, "") or "")

        try:
            index = int(self._store.read(CURRENT_TAB_INDEX_KEY, "0") or "0")
        except ValueError:
            index = 0
        if not 0 <= index < len(documents):
            index = 0
        logger.debug("Restored {} document(s), active index {}", len(documents), index)
        self.switch_to(index)

    def _load_documents(self) -> list[Document]:
        raw = self._store.read(TABS_KEY)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            return [Document(id=str(d["id"]), title=str(d["title"])) for d in data]
        except (ValueError, TypeError, KeyError):
            logger.warning("Stored document list is corrupt, starting a new session")
            return []

    def _persist_documents(self) -> None:
        self._store.write(TABS_KEY, json.dumps([d.to_dict() for d in self.documents]))

    def _persist_session(self) -> None:
        self._persist_documents()
        self._store.write(CURRENT_TAB_INDEX_KEY, str(self.active_index))

    def _update_line_count(self) -> None:
        self.line_count = len(self.text.split("\n"))

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.documents):
            msg = f"document index out of range: {index!r}"
            raise IndexError(msg)

    def _new_id(self) -> str:
        existing = {d.id for d in self.documents}
        stamp = time.time_ns() // 1_000_000
        while f"note-{stamp}" in existing:
            stamp += 1
        return f"note-{stamp}"
