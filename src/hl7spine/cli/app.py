"""
Root Typer application for the hl7spine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="hl7spine",
    help="hl7spine -- inbound HL7 v2 queue processing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        from hl7spine import __version__

        typer.echo(f"hl7spine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for this command"),
) -> None:
    """hl7spine CLI -- submit, process and inspect inbound HL7 messages."""
    from hl7spine.core.logging import configure_logging
    from hl7spine.core.settings import get_settings

    configure_logging(level=log_level, json_format=get_settings().json_logs)


# ── Sub-command registration ─────────────────────────────────────────────

from hl7spine.cli.archive import app as archive_app  # noqa: E402
from hl7spine.cli.db import app as db_app  # noqa: E402
from hl7spine.cli.errors import app as errors_app  # noqa: E402
from hl7spine.cli.queue import app as queue_app  # noqa: E402
from hl7spine.cli.serve import app as serve_app  # noqa: E402
from hl7spine.cli.worker import app as worker_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(queue_app, name="queue", help="Inbound queue.")
app.add_typer(errors_app, name="errors", help="Failed messages.")
app.add_typer(archive_app, name="archive", help="Processed messages.")
app.add_typer(worker_app, name="worker", help="Background queue poller.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
