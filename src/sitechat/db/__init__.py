"""sitechat database layer."""

from sitechat.db.connection import Database
from sitechat.db.migrations import MIGRATIONS, run_migrations
from sitechat.db.repository import Repository, StoreWriteError
from sitechat.db.schema import initialize

__all__ = [
    "Database",
    "initialize",
    "run_migrations",
    "MIGRATIONS",
    "Repository",
    "StoreWriteError",
]
