"""TraceVault command-line interface."""

from tracevault.cli.typer_app import app

__all__ = ["app"]
