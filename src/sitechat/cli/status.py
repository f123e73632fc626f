"""sitechat status: indexed domains and the configured site's facts."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.panel import Panel
from rich.table import Table

from sitechat.cli.common import DEFAULT_DB, console, open_db
from sitechat.cli.index import format_facts
from sitechat.config import ConfigError, SiteChatConfig, load_config, normalize_domain
from sitechat.db.models import IndexMeta
from sitechat.db.repository import Repository


def status_cmd(
    db: Annotated[
        Path,
        typer.Option("--db", help="Path to the index database."),
    ] = DEFAULT_DB,
) -> None:
    """Show every indexed domain and the configured site's facts."""
    # Status works even with a broken sitechat.yaml
    try:
        cfg = load_config()
    except ConfigError:
        cfg = SiteChatConfig()
    domain = normalize_domain(cfg.site.domain)

    _show_site_panel(db, cfg, domain)

    if not db.exists():
        console.print(
            Panel(
                "[yellow]No database found.[/]\n"
                "  Run:  sitechat index",
                title="[bold]Index[/]",
                expand=False,
            )
        )
        return

    conn = open_db(db)
    try:
        repo = Repository(conn)
        metas = repo.list_meta()
        facts = repo.get_facts(domain)
    finally:
        conn.close()

    if not metas:
        console.print("[yellow]No domains indexed yet.[/]  Run:  sitechat index")
    else:
        console.print(_meta_table(metas))

    if facts is not None:
        console.print(Panel(format_facts(facts), title=f"[bold]Facts: {domain}[/]", expand=False))


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------


def _show_site_panel(db: Path, cfg: SiteChatConfig, domain: str) -> None:
    db_info = f"{db}"
    if db.exists():
        size_mb = db.stat().st_size / (1024 * 1024)
        db_info = f"{db} ({size_mb:.1f} MB)"

    lines = [
        f"Site:      [bold]{cfg.site.name}[/] ({domain})",
        f"Database:  {db_info}",
        f"Model:     {cfg.generation.model}",
    ]
    console.print(Panel("\n".join(lines), title="[bold]sitechat[/]", expand=False))


def _meta_table(metas: list[IndexMeta]) -> Table:
    table = Table(title="Indexed domains")
    table.add_column("Domain")
    table.add_column("Site name")
    table.add_column("Pages", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("Indexed at")
    for meta in metas:
        chunks = f"{meta.chunk_count:,}" if meta.ready else "[yellow]0[/]"
        table.add_row(
            meta.domain,
            meta.site_name or "-",
            str(meta.page_count),
            chunks,
            meta.indexed_at,
        )
    return table
