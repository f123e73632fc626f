"""sitechat ask: answer one question about an indexed site."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from sitechat.cli.common import DEFAULT_DB, console, open_db, resolve_site
from sitechat.cli.errors import err_config, err_no_api_key, err_no_db, err_not_indexed
from sitechat.config import ConfigError, load_config
from sitechat.db.repository import Repository
from sitechat.rag.chat import DomainNotIndexedError, answer
from sitechat.rag.llm_client import LLM_ERRORS, validate_api_key


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question about the site.")],
    domain: Annotated[
        str | None,
        typer.Option("--domain", "-d", help="Indexed site (default: configured domain)."),
    ] = None,
    site_name: Annotated[
        str | None,
        typer.Option("--site-name", help="Name used in replies."),
    ] = None,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the index database."),
    ] = DEFAULT_DB,
) -> None:
    """Answer a question from the site's indexed content."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    try:
        cfg = load_config()
        target, name = resolve_site(cfg, domain, site_name)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    try:
        validate_api_key(cfg.generation.model)
    except EnvironmentError:
        console.print(err_no_api_key(cfg.generation.model))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        result = answer(Repository(conn), target, name, question, cfg)
    except DomainNotIndexedError:
        console.print(err_not_indexed(target))
        raise typer.Exit(1)
    except LLM_ERRORS as exc:
        console.print(f"[red]Error:[/] Model call failed: {exc}")
        raise typer.Exit(1)
    finally:
        conn.close()

    console.print(f"\n{result.reply}", markup=False, highlight=False)
    if result.sources:
        console.print("\n[dim]Sources:[/]")
        for url in result.sources:
            console.print(f"  [dim]• {url}[/]")
