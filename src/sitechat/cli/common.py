"""Helpers shared by the sitechat commands."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from sitechat.config import SiteChatConfig, normalize_domain
from sitechat.db.connection import Database
from sitechat.db.schema import initialize

DEFAULT_DB = Path("data") / "cache.db"

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Route library logging through rich; DEBUG when *verbose*."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def open_db(db_path: Path) -> sqlite3.Connection:
    db = Database(db_path)
    conn = db.connect()
    initialize(conn)
    return conn


def resolve_site(cfg: SiteChatConfig, domain: str | None, site_name: str | None) -> tuple[str, str]:
    """Apply --domain / --site-name flags over the loaded config."""
    resolved_domain = normalize_domain(domain) if domain else normalize_domain(cfg.site.domain)
    return resolved_domain, site_name or cfg.site.name
