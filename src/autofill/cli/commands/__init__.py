"""CLI command modules."""

from autofill.cli.commands import config, extract, serve

__all__ = [
    "config",
    "extract",
    "serve",
]
