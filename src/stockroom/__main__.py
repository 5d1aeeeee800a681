"""``python -m stockroom`` entry point (used to launch the worker)."""

from stockroom.cli.app import app

if __name__ == "__main__":
    app()
