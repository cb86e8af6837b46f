"""
CLI: ``hl7spine db`` -- database schema commands.
"""

from __future__ import annotations

import typer

from hl7spine.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("init")
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="SQLAlchemy database URL"),
) -> None:
    """Create the tables and seed the ``local`` source."""
    from hl7spine.core.orm import create_hl7_engine, init_schema

    settings = load_settings(database)
    engine = create_hl7_engine(settings.database_url, echo=settings.database_echo)
    init_schema(engine)
    engine.dispose()
    console.print(f"[green]Schema ready[/green] at {settings.database_url}")
