"""Tests for EnrichmentOrchestrator — submission, polling, caching."""

import requests

from tabnote.app import NoteApp
from tabnote.enrichment import (
    EMPTY_SOURCE_MESSAGE,
    TIMEOUT_MESSAGE,
    WORKING_MESSAGE,
    result_key,
    result_key_prefix,
)
from tabnote.models.document import EnrichmentOutcome, OperationKind, PanelStatus
from tests.unit.fakes import FakeEnrichmentApi, FakeScheduler

DONE_SUMMARY = {"status": "completed", "result": {"summary": "A short summary."}}


def _ready(note_app: NoteApp, operation: OperationKind = OperationKind.SUMMARIZE) -> str:
    """Type some text and select an operation; return the active document id."""
    note_app.session.content_changed("The quick brown fox jumps over the lazy dog.")
    note_app.orchestrator.switch_active_operation(operation)
    return note_app.session.active_document.id


def test_run_without_operation_is_skipped(note_app: NoteApp, fake_api: FakeEnrichmentApi) -> None:
    note_app.session.content_changed("some text")

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.SKIPPED
    assert fake_api.call_count == 0


def test_missing_credential_asks_for_one(note_app: NoteApp, fake_api: FakeEnrichmentApi) -> None:
    asked: list[bool] = []
    orchestrator = note_app.orchestrator
    orchestrator.preferences.api_key = ""
    orchestrator.on_credential_required = lambda: asked.append(True)
    _ready(note_app)

    assert orchestrator.run_enrichment() is EnrichmentOutcome.CREDENTIAL_REQUIRED
    assert asked == [True]
    assert fake_api.call_count == 0


def test_empty_text_is_reported(note_app: NoteApp, fake_api: FakeEnrichmentApi) -> None:
    orchestrator = note_app.orchestrator
    note_app.session.content_changed("   \n ")
    orchestrator.switch_active_operation(OperationKind.SUMMARIZE)

    assert orchestrator.run_enrichment() is EnrichmentOutcome.EMPTY_SOURCE
    assert orchestrator.panel.status is PanelStatus.ERROR
    assert orchestrator.panel.text == EMPTY_SOURCE_MESSAGE
    assert fake_api.call_count == 0


def test_submit_and_poll_until_completed(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    doc_id = _ready(note_app)
    fake_api.status_responses = [{"status": "pending"}, DONE_SUMMARY]
    orchestrator = note_app.orchestrator

    assert orchestrator.run_enrichment() is EnrichmentOutcome.SUBMITTED
    assert fake_api.submissions[0]["operation"] == "summarize"
    assert fake_api.submissions[0]["token"] == "secret"
    assert fake_api.submissions[0]["language"] is None
    assert orchestrator.panel.text == WORKING_MESSAGE
    assert orchestrator.in_flight

    scheduler.advance(3.0)

    assert len(fake_api.status_calls) == 2
    assert orchestrator.panel.status is PanelStatus.RESULT
    assert orchestrator.panel.text == "A short summary."
    assert not orchestrator.in_flight
    assert note_app.store.read(f"{doc_id}-summarize") == "A short summary."


def test_second_run_on_same_text_uses_cache(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    _ready(note_app)
    fake_api.status_responses = [DONE_SUMMARY]
    orchestrator = note_app.orchestrator
    orchestrator.run_enrichment()
    calls = fake_api.call_count

    assert orchestrator.run_enrichment() is EnrichmentOutcome.CACHED
    assert fake_api.call_count == calls
    assert orchestrator.panel.text == "A short summary."


def test_changed_text_misses_cache(note_app: NoteApp, fake_api: FakeEnrichmentApi) -> None:
    _ready(note_app)
    fake_api.status_responses = [DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()

    note_app.session.content_changed("Entirely different text for the summary.")

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.SUBMITTED
    assert len(fake_api.submissions) == 2


def test_polling_times_out_after_ten_pending_responses(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    _ready(note_app)
    orchestrator = note_app.orchestrator

    orchestrator.run_enrichment()
    scheduler.advance(120)

    assert len(fake_api.status_calls) == 10
    assert orchestrator.panel.status is PanelStatus.ERROR
    assert orchestrator.panel.text == TIMEOUT_MESSAGE
    assert not orchestrator.in_flight
    assert [t for t in scheduler.pending if t.callback == orchestrator.poll_job] == []


def test_failed_job_is_reported_and_keeps_previous_result(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    doc_id = _ready(note_app)
    note_app.store.write(f"{doc_id}-summarize", "older summary")
    fake_api.status_responses = [{"status": "failed", "error": "model overloaded"}]

    note_app.orchestrator.run_enrichment()
    scheduler.advance(30)

    assert len(fake_api.status_calls) == 1
    assert note_app.orchestrator.panel.text == "Error: model overloaded"
    assert note_app.store.read(f"{doc_id}-summarize") == "older summary"


def test_transport_error_on_submit_is_rendered(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    _ready(note_app)
    fake_api.submit_response = requests.ConnectionError("connection refused")

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.FAILED
    assert note_app.orchestrator.panel.status is PanelStatus.ERROR
    assert "connection refused" in note_app.orchestrator.panel.text


def test_transport_error_while_polling_stops(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    _ready(note_app)
    fake_api.status_responses = [{"status": "pending"}, requests.Timeout("read timed out")]

    note_app.orchestrator.run_enrichment()
    scheduler.advance(30)

    assert len(fake_api.status_calls) == 2
    assert "read timed out" in note_app.orchestrator.panel.text
    assert not note_app.orchestrator.in_flight


def test_submission_without_status_url_is_an_error(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    _ready(note_app)
    fake_api.submit_response = {"message": "quota exceeded"}

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.FAILED
    assert note_app.orchestrator.panel.text == "Error: quota exceeded"


def test_inline_result_completes_without_polling(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    doc_id = _ready(note_app, OperationKind.PARAPHRASE)
    fake_api.submit_response = {"status": "success", "paraphrase": "A fast fox leaps."}

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.COMPLETED
    assert fake_api.status_calls == []
    assert note_app.store.read(f"{doc_id}-paraphrase") == "A fast fox leaps."


def test_keywords_are_joined(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    _ready(note_app, OperationKind.KEYWORDS)
    fake_api.status_responses = [{"status": "success", "result": {"keywords": ["fox", "dog"]}}]

    note_app.orchestrator.run_enrichment()

    assert note_app.orchestrator.panel.text == "fox, dog"


def test_translation_uses_language_in_request_and_key(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    note_app.orchestrator.preferences.translation_language = "fr"
    doc_id = _ready(note_app, OperationKind.TRANSLATE)
    fake_api.status_responses = [
        {"status": "completed", "result": {"translated_content": "Le renard."}}
    ]

    note_app.orchestrator.run_enrichment()

    assert fake_api.submissions[0]["language"] == "fr"
    assert note_app.store.read(f"{doc_id}-translate-fr") == "Le renard."


def test_switching_document_cancels_pending_poll(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    first_id = _ready(note_app)
    fake_api.status_responses = [{"status": "pending"}, DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()

    note_app.session.create_document()
    scheduler.advance(30)

    assert len(fake_api.status_calls) == 1
    assert note_app.orchestrator.panel.text == ""
    assert note_app.store.read(f"{first_id}-summarize") is None


def test_new_run_supersedes_in_flight_job(
    note_app: NoteApp, fake_api: FakeEnrichmentApi, scheduler: FakeScheduler
) -> None:
    _ready(note_app)
    note_app.orchestrator.run_enrichment()
    assert len(scheduler.pending) >= 1

    note_app.session.content_changed("Replacement text that is quite different.")
    fake_api.status_responses = [DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()
    scheduler.advance(30)

    assert len(fake_api.status_calls) == 2
    assert note_app.orchestrator.panel.text == "A short summary."


def test_switching_operation_loads_persisted_result_without_network(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    doc_id = note_app.session.active_document.id
    note_app.store.write(result_key(doc_id, OperationKind.PROOFREAD), "Proofread text.")

    note_app.orchestrator.switch_active_operation(OperationKind.PROOFREAD)

    assert note_app.orchestrator.panel.status is PanelStatus.RESULT
    assert note_app.orchestrator.panel.text == "Proofread text."
    assert fake_api.call_count == 0


def test_switching_back_to_document_reloads_its_result(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    _ready(note_app)
    fake_api.status_responses = [DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()

    note_app.session.create_document()
    assert note_app.orchestrator.panel.text == ""

    note_app.session.switch_to(0)
    assert note_app.orchestrator.panel.text == "A short summary."
    assert len(fake_api.submissions) == 1


def test_closing_active_document_clears_panel_and_cache(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    session = note_app.session
    session.create_document()
    session.switch_to(0)
    closed_id = _ready(note_app)
    fake_api.status_responses = [DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()
    panels: list[str | None] = []
    note_app.orchestrator.on_panel_change = lambda panel: panels.append(panel.document_id)

    session.close_document(0)

    assert panels[0] is None
    assert note_app.orchestrator.active_document_id != closed_id
    assert note_app.orchestrator.panel.text == ""
    assert note_app.store.read(f"{closed_id}-summarize") is None


def test_forget_document_drops_cached_results(
    note_app: NoteApp, fake_api: FakeEnrichmentApi
) -> None:
    doc_id = _ready(note_app)
    fake_api.status_responses = [DONE_SUMMARY]
    note_app.orchestrator.run_enrichment()

    note_app.orchestrator.forget_document(doc_id)

    assert note_app.orchestrator.run_enrichment() is EnrichmentOutcome.SUBMITTED


def test_result_keys_share_the_document_prefix() -> None:
    prefix = result_key_prefix("doc")

    assert result_key("doc", OperationKind.SUMMARIZE).startswith(prefix)
    assert result_key("doc", OperationKind.TRANSLATE, "xx").startswith(prefix)
    assert not result_key("doc2", OperationKind.SUMMARIZE).startswith(prefix)
