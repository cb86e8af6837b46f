"""
CLI: ``hl7spine errors`` -- inspect and requeue failed messages.
"""

from __future__ import annotations

import typer

from hl7spine.cli.utils import console, fail, load_settings, output_item, output_items

app = typer.Typer(no_args_is_help=True)

_COLUMNS = ("id", "source_name", "source_key", "error", "created_at")


@app.command("list")
def list_errors(
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List error entries, newest first."""
    from hl7spine.core.repositories import PageSlice
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        entries, total = pipeline.errors.list_entries(page=PageSlice(limit=limit, offset=offset))
    output_items(entries, as_json=json_out, title="HL7 Errors", total=total, columns=_COLUMNS)


@app.command("show")
def show(
    error_id: int = typer.Argument(..., help="Error entry ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show one error entry with its details and raw message."""
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        entry = pipeline.errors.get(error_id)
    if entry is None:
        fail(f"No error entry with id {error_id}")
        return
    output_item(entry, as_json=json_out, title=f"Error {error_id}")


@app.command("requeue")
def requeue(
    error_id: int = typer.Argument(..., help="Error entry ID"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Put a failed message back into the queue and remove the error entry."""
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        entry = pipeline.errors.requeue(error_id)
        if entry is None:
            fail(f"No error entry with id {error_id}")
            return
        pipeline.session.commit()
    if not json_out:
        console.print(f"[green]Requeued[/green] error {error_id} as queue entry {entry.id}")
        return
    output_item(entry, as_json=True)
