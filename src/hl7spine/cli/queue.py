"""
CLI: ``hl7spine queue`` -- submit, inspect and process inbound messages.
"""

from __future__ import annotations

from pathlib import Path

import typer

from hl7spine.cli.utils import console, fail, load_settings, output_item, output_items

app = typer.Typer(no_args_is_help=True)

_COLUMNS = ("id", "source_name", "source_key", "state", "created_at")


@app.command("submit")
def submit(
    path: Path = typer.Argument(..., help="File containing one HL7 message"),
    source: str | None = typer.Option(None, "--source", "-s", help="Source name (default: upload source)"),
    key: str | None = typer.Option(None, "--key", "-k", help="Source key (default: file name)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Enqueue a message file."""
    from hl7spine.core.errors import SubmissionError
    from hl7spine.framework.submission import submit_file
    from hl7spine.wiring import open_pipeline

    settings = load_settings(database)
    with open_pipeline(settings) as pipeline:
        try:
            entry = submit_file(
                pipeline.queue,
                path,
                source_name=source or settings.upload_source_name,
                source_key=key,
            )
        except SubmissionError as e:
            fail(e.message)
            return
    if entry is None:
        console.print("[yellow]Empty file, nothing enqueued[/yellow]")
        return
    output_item(entry, as_json=json_out, title="Enqueued")


@app.command("list")
def list_entries(
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List queue entries, oldest first."""
    from hl7spine.core.repositories import PageSlice
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        entries, total = pipeline.queue.list_entries(page=PageSlice(limit=limit, offset=offset))
    output_items(entries, as_json=json_out, title="Inbound Queue", total=total, columns=_COLUMNS)


@app.command("process")
def process(
    limit: int | None = typer.Option(None, "--limit", "-n", help="Max entries (default: batch size)"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Process pending entries once."""
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        summary = pipeline.processor.process_pending(limit)
    output_item(summary.to_dict(), as_json=json_out, title="Processed")
