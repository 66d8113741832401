"""``flask`` sub-commands for operators."""

from __future__ import annotations

from flask import Flask

from .tokens import tokens_cli


def init_app(app: Flask) -> None:
    """Expose ``flask tokens ...`` on ``app``."""
    app.cli.add_command(tokens_cli)
