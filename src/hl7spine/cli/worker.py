"""
CLI: ``hl7spine worker`` -- start the queue poller.
"""

from __future__ import annotations

import typer

from hl7spine.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    poll_interval: float | None = typer.Option(None, "--poll-interval", help="Seconds between polls"),
    batch_size: int | None = typer.Option(None, "--batch-size", help="Max entries per poll"),
    database: str | None = typer.Option(None, "--database", "-d"),
) -> None:
    """Poll the inbound queue until interrupted.

    Example::

        hl7spine worker start --poll-interval 2 --batch-size 20
    """
    from hl7spine.framework.worker import QueuePoller
    from hl7spine.wiring import open_pipeline

    settings = load_settings(database)
    interval = poll_interval or settings.poll_interval_seconds
    size = batch_size or settings.batch_size
    console.print(f"[bold green]Starting hl7spine worker[/bold green] (poll={interval}s, batch={size})")

    with open_pipeline(settings) as pipeline:
        poller = QueuePoller(pipeline.processor, poll_interval=interval, batch_size=size)
        try:
            stats = poller.run_forever()
        except KeyboardInterrupt:
            console.print("\n[yellow]Worker stopped by user[/yellow]")
            return
    console.print(f"[dim]{stats.to_dict()}[/dim]")
