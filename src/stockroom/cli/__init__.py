"""
CLI layer for stockroom.

Provides a Typer application with sub-commands that delegate to the
operations layer (``stockroom.ops``) and the supervisor. This package
handles only terminal transport: argument parsing and table formatting.

Entry point::

    stockroom --help
"""

from stockroom.cli.app import app

__all__ = ["app"]
