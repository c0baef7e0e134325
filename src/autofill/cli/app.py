"""Main CLI application."""

import typer

from autofill.cli.commands import config, extract, serve

app = typer.Typer(
    name="autofill",
    help="Catalog autofill - product photo to catalog attributes",
    no_args_is_help=True,
)

serve.register(app)
extract.register(app)
config.register(app)


if __name__ == "__main__":
    app()
