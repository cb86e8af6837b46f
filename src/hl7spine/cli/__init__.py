"""
CLI layer for hl7spine.

Typer application whose commands open a pipeline from settings and
delegate to the framework; this package handles argument parsing and
terminal output only.

Entry point::

    hl7spine --help
"""

from hl7spine.cli.app import app

__all__ = ["app"]
