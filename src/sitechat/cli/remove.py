"""sitechat remove: drop a domain's stored index.

Removes, in one transaction:
  - chunks
  - index metadata
  - site facts

Usage:
  sitechat remove example.com
  sitechat remove example.com --yes
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from sitechat.cli.common import DEFAULT_DB, console, open_db
from sitechat.cli.errors import err_config, err_domain_not_found, err_no_db, err_store_write
from sitechat.config import ConfigError, normalize_domain
from sitechat.db.repository import Repository, StoreWriteError


def remove_cmd(
    domain: Annotated[str, typer.Argument(help="Domain to remove, e.g. example.com.")],
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the index database."),
    ] = DEFAULT_DB,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a domain's chunks, metadata, and facts."""
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    try:
        target = normalize_domain(domain)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    conn = open_db(db)
    try:
        repo = Repository(conn)
        meta = repo.get_meta(target)
        if meta is None:
            console.print(err_domain_not_found(target))
            raise typer.Exit(0)

        console.print(f"\nRemove index: [bold]{target}[/]")
        console.print(f"  Pages: {meta.page_count}  |  Chunks: {meta.chunk_count}")

        if not yes:
            if not typer.confirm("Confirm removal?", default=False):
                console.print("[dim]Cancelled.[/]")
                raise typer.Exit(0)

        try:
            deleted = repo.delete_domain(target)
        except StoreWriteError as exc:
            console.print(err_store_write(str(exc)))
            raise typer.Exit(1)

        console.print(f"\n[green]✓[/] Removed: {target}")
        console.print(f"  {deleted} chunks deleted")
    finally:
        conn.close()
