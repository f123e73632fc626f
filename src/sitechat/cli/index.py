"""sitechat index: crawl a website and build (or reuse) its RAG index.

Usage:
  sitechat index
  sitechat index --domain example.com --site-name "Example Co" --force
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel

from sitechat.cli.common import DEFAULT_DB, configure_logging, console, open_db, resolve_site
from sitechat.cli.errors import (
    err_config,
    err_crawl_empty,
    err_index_empty,
    err_store_write,
)
from sitechat.config import ConfigError, load_config
from sitechat.db.models import SiteFacts
from sitechat.db.repository import Repository, StoreWriteError
from sitechat.rag.indexer import CrawlEmptyError, IndexEmptyError, ensure_index


def index_cmd(
    domain: Annotated[
        str | None,
        typer.Option("--domain", "-d", help="Site to index (default: configured domain)."),
    ] = None,
    site_name: Annotated[
        str | None,
        typer.Option("--site-name", help="Human-readable site name."),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Re-crawl even if an index exists."),
    ] = False,
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the index database (created if missing)."),
    ] = DEFAULT_DB,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every fetched and skipped URL."),
    ] = False,
) -> None:
    """Crawl a website and store its chunks and facts."""
    configure_logging(verbose)

    try:
        cfg = load_config()
        target, name = resolve_site(cfg, domain, site_name)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1)

    conn = open_db(db)
    repo = Repository(conn)
    try:
        console.print(f"\n[bold]→ {target}[/]")
        try:
            status = ensure_index(repo, target, name, cfg, force=force)
        except ConfigError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1)
        except CrawlEmptyError:
            console.print(err_crawl_empty(target))
            raise typer.Exit(1)
        except IndexEmptyError:
            console.print(err_index_empty(target))
            raise typer.Exit(1)
        except StoreWriteError as exc:
            console.print(err_store_write(str(exc)))
            raise typer.Exit(1)

        verb = "Indexed" if status.built else "Cached"
        console.print(
            f"  [green]✓[/] {verb}: {status.page_count} pages, "
            f"{status.chunk_count} chunks  [dim]({status.indexed_at})[/]"
        )
        if not status.built:
            console.print("  [dim]Use --force to re-crawl.[/]")

        facts = repo.get_facts(target)
        if facts is not None:
            console.print(Panel(format_facts(facts), title="[bold]Site facts[/]", expand=False))
    finally:
        conn.close()


def format_facts(facts: SiteFacts) -> str:
    owner = facts.owner_name or "-"
    if facts.owner_name and facts.owner_title:
        owner = f"{facts.owner_name} ({facts.owner_title})"
    lines = [
        f"Owner:     {owner}",
        f"Phones:    {', '.join(facts.phones) or '-'}",
        f"Emails:    {', '.join(facts.emails) or '-'}",
        f"Addresses: {' | '.join(facts.addresses) or '-'}",
        f"Hours:     {facts.hours or '-'}",
        f"Services:  {', '.join(facts.services) or '-'}",
    ]
    return "\n".join(lines)
