"""Run enrichment jobs for the active document and cache their results."""

import hashlib
from collections.abc import Callable
from dataclasses import replace
from typing import Any

import requests
from loguru import logger

from tabnote.api import EnrichmentApiError, extract_result
from tabnote.config import POLL_INTERVAL_SECONDS, POLL_MAX_RETRIES
from tabnote.models.document import (
    CacheKey,
    EnrichmentOutcome,
    Job,
    OperationKind,
    Panel,
    PanelStatus,
)
from tabnote.protocols import EnrichmentApiProtocol, SchedulerProtocol, TimerHandleProtocol
from tabnote.settings import Preferences
from tabnote.store import PersistentStore

_DONE_STATUSES = {"completed", "success"}
_FAILED_STATUSES = {"failed"}

# Errors a submission or status read may raise. JSON decode errors are ValueErrors.
_API_ERRORS = (requests.RequestException, EnrichmentApiError, ValueError)

WORKING_MESSAGE = "Processing..."
EMPTY_SOURCE_MESSAGE = "Please enter some text first."
TIMEOUT_MESSAGE = "The request timed out. Please try again."


def content_digest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def result_key(document_id: str, operation: OperationKind, language: str | None = None) -> str:
    """Store key of the persisted result for a document and operation."""
    if operation is OperationKind.TRANSLATE and language:
        return f"{document_id}-{operation.value}-{language}"
    return f"{document_id}-{operation.value}"


def result_key_prefix(document_id: str) -> str:
    """Prefix shared by every result key of a document, and by nothing else."""
    return f"{document_id}-"


class EnrichmentOrchestrator:
    """Submit the active document's text to the enrichment service.

    At most one job is in flight. Its polls are scheduled on the injected
    scheduler, and any change of document or operation cancels the pending
    poll so a late result never lands in a panel that shows something else.
    Results are cached in memory by fingerprint and persisted per document
    and operation.
    """

    def __init__(
        self,
        store: PersistentStore,
        api: EnrichmentApiProtocol,
        scheduler: SchedulerProtocol,
        *,
        text_provider: Callable[[], str] = lambda: "",
        on_credential_required: Callable[[], None] | None = None,
        on_panel_change: Callable[[Panel], None] | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_retries: int = POLL_MAX_RETRIES,
    ) -> None:
        self._store = store
        self._api = api
        self._scheduler = scheduler
        self.preferences = Preferences(store)
        self.text_provider = text_provider
        self.on_credential_required = on_credential_required
        self.on_panel_change = on_panel_change
        self.poll_interval = poll_interval
        self.max_retries = max_retries

        self.active_operation: OperationKind | None = None
        self.active_document_id: str | None = None
        self.panel = Panel()

        self._cache: dict[CacheKey, str] = {}
        self._job: Job | None = None
        self._poll_timer: TimerHandleProtocol | None = None

    @property
    def in_flight(self) -> bool:
        return self._job is not None

    def run_enrichment(self) -> EnrichmentOutcome:
        """Produce the active operation's result for the active document."""
        operation = self.active_operation
        document_id = self.active_document_id
        if operation is None or document_id is None:
            return EnrichmentOutcome.SKIPPED

        self._cancel_poll()

        token = self.preferences.api_key
        if not token:
            logger.info("No API key configured, asking for one")
            if self.on_credential_required is not None:
                self.on_credential_required()
            return EnrichmentOutcome.CREDENTIAL_REQUIRED

        text = self.text_provider()
        if not text.strip():
            self._show(PanelStatus.ERROR, EMPTY_SOURCE_MESSAGE)
            return EnrichmentOutcome.EMPTY_SOURCE

        language = self._language_for(operation)
        key = CacheKey(operation, document_id, language, content_digest(text))
        persisted_key = result_key(document_id, operation, language)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for {} on {}", operation.value, document_id)
            self._show(PanelStatus.RESULT, cached)
            self._store.write(persisted_key, cached)
            return EnrichmentOutcome.CACHED

        self._show(PanelStatus.WORKING, WORKING_MESSAGE)
        try:
            response = self._api.submit(operation.value, text, token=token, language=language)
        except _API_ERRORS as e:
            logger.warning("Submitting {} job failed: {}", operation.value, e)
            self._show(PanelStatus.ERROR, f"Error: {e}")
            return EnrichmentOutcome.FAILED

        status_url = response.get("status_url")
        if isinstance(status_url, str) and status_url:
            job = Job(
                status_url=status_url,
                operation=operation,
                document_id=document_id,
                cache_key=key,
                result_key=persisted_key,
            )
            logger.debug("Job submitted: {}", status_url)
            self._job = job
            self.poll_job(job)
            return EnrichmentOutcome.SUBMITTED

        if str(response.get("status", "")).lower() in _DONE_STATUSES:
            job = Job("", operation, document_id, key, persisted_key)
            if self._complete(job, response):
                return EnrichmentOutcome.COMPLETED
            return EnrichmentOutcome.FAILED

        message = response.get("error") or response.get("message") or "Unexpected response"
        self._show(PanelStatus.ERROR, f"Error: {message}")
        return EnrichmentOutcome.FAILED

    def poll_job(self, job: Job) -> None:
        """Read the job's status once, then finish or schedule the next read."""
        self._poll_timer = None
        if job.document_id != self.active_document_id or job.operation != self.active_operation:
            logger.debug("Dropping stale poll for {} on {}", job.operation.value, job.document_id)
            return

        if job.retries_elapsed >= self.max_retries:
            logger.warning(
                "Job {} still pending after {} polls, giving up", job.status_url, job.retries_elapsed
            )
            self._job = None
            self._show(PanelStatus.ERROR, TIMEOUT_MESSAGE)
            return

        try:
            response = self._api.status(job.status_url, token=self.preferences.api_key)
        except _API_ERRORS as e:
            logger.warning("Polling {} failed: {}", job.status_url, e)
            self._job = None
            self._show(PanelStatus.ERROR, f"Error: {e}")
            return

        status = str(response.get("status", "")).lower()
        if status in _DONE_STATUSES:
            self._complete(job, response)
        elif status in _FAILED_STATUSES:
            self._job = None
            message = response.get("error") or response.get("message") or "Job failed"
            self._show(PanelStatus.ERROR, f"Error: {message}")
        else:
            self._job = replace(job, retries_elapsed=job.retries_elapsed + 1)
            self._poll_timer = self._scheduler.call_later(self.poll_interval, self.poll_job, self._job)

    def switch_active_operation(self, operation: OperationKind | None) -> None:
        if operation != self.active_operation:
            self._cancel_poll()
        self.active_operation = operation
        self._reload_panel()

    def set_active_document(self, document_id: str | None) -> None:
        if document_id != self.active_document_id:
            self._cancel_poll()
        self.active_document_id = document_id
        self._reload_panel()

    def clear_panel_for(self, document_id: str) -> None:
        if self.panel.document_id != document_id:
            return
        if self._job is not None and self._job.document_id == document_id:
            self._cancel_poll()
        self._set_panel(Panel(document_id=None, operation=self.active_operation))

    def forget_document(self, document_id: str) -> None:
        """Drop cached results of a closed document."""
        for key in [k for k in self._cache if k.document_id == document_id]:
            del self._cache[key]

    def _complete(self, job: Job, response: dict[str, Any]) -> bool:
        self._job = None
        try:
            result = extract_result(job.operation.value, response)
        except EnrichmentApiError as e:
            logger.warning("Bad result for {}: {}", job.operation.value, e)
            self._show(PanelStatus.ERROR, f"Error: {e}")
            return False

        self._cache[job.cache_key] = result
        self._store.write(job.result_key, result)
        self._show(PanelStatus.RESULT, result)
        logger.debug("Job for {} on {} completed", job.operation.value, job.document_id)
        return True

    def _reload_panel(self) -> None:
        operation, document_id = self.active_operation, self.active_document_id
        if operation is None or document_id is None:
            self._set_panel(Panel(document_id=document_id, operation=operation))
            return

        language = self._language_for(operation)
        key = CacheKey(operation, document_id, language, content_digest(self.text_provider()))
        text = self._cache.get(key)
        if text is None:
            text = self._store.read(result_key(document_id, operation, language), "") or ""
        self._show(PanelStatus.RESULT if text else PanelStatus.EMPTY, text)

    def _language_for(self, operation: OperationKind) -> str | None:
        if operation is OperationKind.TRANSLATE:
            return self.preferences.translation_language
        return None

    def _cancel_poll(self) -> None:
        if self._poll_timer is not None:
            self._poll_timer.cancel()
            self._poll_timer = None
        self._job = None

    def _show(self, status: PanelStatus, text: str) -> None:
        self._set_panel(Panel(self.active_document_id, self.active_operation, status, text))

    def _set_panel(self, panel: Panel) -> None:
        self.panel = panel
        if self.on_panel_change is not None:
            self.on_panel_change(panel)
