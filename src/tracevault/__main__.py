"""Entry point for ``python -m tracevault``."""

from tracevault.cli.typer_app import app

if __name__ == "__main__":
    app()
