"""
CLI: ``hl7spine archive`` -- list successfully processed messages.
"""

from __future__ import annotations

import typer

from hl7spine.cli.utils import load_settings, output_items

app = typer.Typer(no_args_is_help=True)

_COLUMNS = ("id", "source_name", "source_key", "archived_at")


@app.command("list")
def list_archive(
    limit: int = typer.Option(50, "--limit", "-n"),
    offset: int = typer.Option(0, "--offset"),
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List archived entries, newest first."""
    from hl7spine.core.repositories import PageSlice
    from hl7spine.wiring import open_pipeline

    with open_pipeline(load_settings(database)) as pipeline:
        entries, total = pipeline.archive.list_entries(page=PageSlice(limit=limit, offset=offset))
    output_items(entries, as_json=json_out, title="HL7 Archive", total=total, columns=_COLUMNS)
