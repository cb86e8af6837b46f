"""
CLI utility helpers -- settings, output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from enum import Enum
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from hl7spine.core.settings import Hl7SpineSettings, get_settings

console = Console()
err_console = Console(stderr=True)


# ── Settings helper ──────────────────────────────────────────────────────


def load_settings(database: str | None = None) -> Hl7SpineSettings:
    """Environment settings, with ``--database`` taking precedence."""
    if database:
        return Hl7SpineSettings(database_url=database)
    return get_settings()


# ── Output helpers ───────────────────────────────────────────────────────


def to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return {k: (v.value if isinstance(v, Enum) else v) for k, v in asdict(obj).items()}
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def output_items(
    items: list[Any],
    *,
    as_json: bool = False,
    title: str = "",
    total: int | None = None,
    columns: tuple[str, ...] | None = None,
) -> None:
    """Render a list of records, as a Rich table or JSON."""
    rows = [to_dict(i) for i in items]
    if columns:
        rows = [{c: r.get(c) for c in columns} for r in rows]

    if as_json:
        payload = {"items": rows, "total": total if total is not None else len(rows)}
        console.print_json(json.dumps(payload, default=str))
        return

    if not rows:
        console.print("[dim]No items.[/dim]")
        return
    _print_table(rows, title=title)
    if total is not None:
        console.print(f"\n[dim]Showing {len(rows)} of {total}[/dim]")


def output_item(item: Any, *, as_json: bool = False, title: str = "") -> None:
    data = to_dict(item)
    if as_json:
        console.print_json(json.dumps(data, default=str))
        return
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")


def fail(message: str, code: int = 1) -> None:
    """Print an error and exit."""
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=code)


def _print_table(rows: list[dict[str, Any]], *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(str(v) for v in row.values()))
    console.print(table)
