"""Command-line interface for tabnote."""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger

from tabnote.app import NoteApp, open_app, wait_for_enrichment
from tabnote.config import resolve_data_directory
from tabnote.logging_config import configure_logging
from tabnote.models.document import EnrichmentOutcome, OperationKind, PanelStatus

app = typer.Typer(help="tabnote: tabbed notes with text enrichment.")

DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Session database directory"),
]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log warnings and errors"),
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)


@contextmanager
def _session(data_dir: Path | None) -> Iterator[tuple[NoteApp, asyncio.AbstractEventLoop]]:
    """Open the session on a fresh event loop, flush and close on exit."""
    loop = asyncio.new_event_loop()
    note_app, backing = open_app(data_dir or resolve_data_directory(), loop)
    try:
        yield note_app, loop
    finally:
        note_app.store.flush()
        backing.close()
        loop.close()


def _print_documents(note_app: NoteApp) -> None:
    session = note_app.session
    for i, document in enumerate(session.documents):
        marker = "*" if i == session.active_index else " "
        typer.echo(f"{marker} {i}: {document.title}  [id={document.id}]")


@app.command(name="list")
def list_cmd(data_dir: DataDirOption = None) -> None:
    """List open documents; the active one is marked with '*'."""
    with _session(data_dir) as (note_app, _loop):
        _print_documents(note_app)


@app.command()
def new(data_dir: DataDirOption = None) -> None:
    """Create a new document and make it active."""
    with _session(data_dir) as (note_app, _loop):
        document = note_app.session.create_document()
        typer.echo(f"Created {document.title!r}")


@app.command()
def switch(
    index: int = typer.Argument(..., help="Document index"),
    data_dir: DataDirOption = None,
) -> None:
    """Make another document active."""
    with _session(data_dir) as (note_app, _loop):
        try:
            note_app.session.switch_to(index)
        except IndexError as e:
            typer.echo(str(e))
            raise typer.Exit(1) from None
        _print_documents(note_app)


@app.command()
def close(
    index: int = typer.Argument(..., help="Document index"),
    data_dir: DataDirOption = None,
) -> None:
    """Close a document and delete its content and results."""
    with _session(data_dir) as (note_app, _loop):
        try:
            closed = note_app.session.close_document(index)
        except IndexError as e:
            typer.echo(str(e))
            raise typer.Exit(1) from None
        if not closed:
            typer.echo("Cannot close the last document.")
            raise typer.Exit(1)
        _print_documents(note_app)


@app.command()
def rename(
    index: int = typer.Argument(..., help="Document index"),
    title: str = typer.Argument(..., help="New title"),
    data_dir: DataDirOption = None,
) -> None:
    """Rename a document."""
    with _session(data_dir) as (note_app, _loop):
        try:
            document = note_app.session.rename_document(index, title)
        except IndexError as e:
            typer.echo(str(e))
            raise typer.Exit(1) from None
        typer.echo(f"Renamed to {document.title!r}")


@app.command()
def show(data_dir: DataDirOption = None) -> None:
    """Print the active document's text."""
    with _session(data_dir) as (note_app, _loop):
        typer.echo(note_app.session.text)


@app.command()
def write(
    text: str = typer.Argument(..., help="New text of the active document"),
    data_dir: DataDirOption = None,
) -> None:
    """Replace the active document's text."""
    with _session(data_dir) as (note_app, _loop):
        note_app.session.content_changed(text)
        typer.echo(f"{note_app.session.line_count} line(s)")


@app.command(name="set-key")
def set_key(
    key: str = typer.Argument(..., help="API key for the enrichment service"),
    data_dir: DataDirOption = None,
) -> None:
    """Store the enrichment service API key."""
    with _session(data_dir) as (note_app, _loop):
        note_app.orchestrator.preferences.api_key = key
        typer.echo("API key saved.")


@app.command()
def language(
    code: str = typer.Argument(..., help="Target language code, e.g. 'fr'"),
    data_dir: DataDirOption = None,
) -> None:
    """Set the translation target language."""
    with _session(data_dir) as (note_app, _loop):
        try:
            note_app.orchestrator.preferences.translation_language = code
        except ValueError as e:
            typer.echo(str(e))
            raise typer.Exit(1) from None
        typer.echo(f"Translation language: {note_app.orchestrator.preferences.translation_language}")


@app.command()
def enrich(
    kind: OperationKind = typer.Argument(..., help="Enrichment operation"),
    data_dir: DataDirOption = None,
) -> None:
    """Run an enrichment operation on the active document and print the result."""
    with _session(data_dir) as (note_app, loop):
        orchestrator = note_app.orchestrator
        orchestrator.on_credential_required = lambda: typer.echo(
            "No API key configured. Run 'tabnote set-key KEY' first."
        )
        orchestrator.switch_active_operation(kind)
        outcome = orchestrator.run_enrichment()
        if outcome is EnrichmentOutcome.SUBMITTED:
            wait_for_enrichment(note_app, loop)
        logger.debug("Enrichment outcome: {}", outcome.value)

        panel = orchestrator.panel
        if panel.text:
            typer.echo(panel.text)
        if outcome is EnrichmentOutcome.CREDENTIAL_REQUIRED or panel.status is PanelStatus.ERROR:
            raise typer.Exit(1)
