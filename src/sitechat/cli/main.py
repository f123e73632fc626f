"""sitechat CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from sitechat.cli.ask import ask_cmd
from sitechat.cli.context import context_cmd
from sitechat.cli.index import index_cmd
from sitechat.cli.remove import remove_cmd
from sitechat.cli.status import status_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("sitechat")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"sitechat {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="sitechat",
    help=(
        "sitechat: answer questions about a website from its own content.\n\n"
        "  sitechat index    Crawl the site and build its index.\n"
        "  sitechat ask      Answer a question from the indexed pages."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """sitechat: website-grounded question answering."""


app.command("index")(index_cmd)
app.command("context")(context_cmd)
app.command("ask")(ask_cmd)
app.command("status")(status_cmd)
app.command("remove")(remove_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed sitechat version."""
    typer.echo(f"sitechat {_installed_version()}")


if __name__ == "__main__":
    app()
