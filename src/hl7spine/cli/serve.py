"""
CLI: ``hl7spine serve`` -- start the API server.
"""

from __future__ import annotations

import typer

from hl7spine.cli.utils import console, load_settings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the hl7spine REST API server."""
    import uvicorn

    settings = load_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(f"[bold green]Starting hl7spine API[/bold green] on {host}:{port}")
    uvicorn.run(
        "hl7spine.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )
