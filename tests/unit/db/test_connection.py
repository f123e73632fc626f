"""Tests for the Database connection layer."""

from __future__ import annotations

from pathlib import Path

import pytest

from sitechat.db.connection import BUSY_TIMEOUT_MS, Database


def test_connect_creates_file(tmp_path):
    db_path = tmp_path / "cache.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_connect_creates_parent_directory(tmp_path):
    db_path = tmp_path / "data" / "nested" / "cache.db"
    conn = Database(db_path).connect()
    conn.close()
    assert db_path.exists()


def test_wal_journal_mode(tmp_path):
    conn = Database(tmp_path / "cache.db").connect()
    mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
    conn.close()
    assert mode == "wal"


def test_row_factory_set(tmp_path):
    conn = Database(tmp_path / "cache.db").connect()
    conn.execute("CREATE TABLE t (x INTEGER)")
    conn.execute("INSERT INTO t VALUES (42)")
    row = conn.execute("SELECT x FROM t").fetchone()
    conn.close()
    assert row["x"] == 42


def test_context_manager_closes_connection(tmp_path):
    db = Database(tmp_path / "cache.db")
    with db as conn:
        conn.execute("CREATE TABLE t (x INTEGER)")
    with pytest.raises(Exception):
        conn.execute("SELECT 1")


def test_context_manager_accepts_path_str(tmp_path):
    db = Database(str(tmp_path / "cache.db"))
    assert isinstance(db.db_path, Path)
    with db as conn:
        assert conn.execute("SELECT 1").fetchone()[0] == 1


def test_busy_timeout_set(tmp_path):
    conn = Database(tmp_path / "cache.db").connect()
    timeout = conn.execute("PRAGMA busy_timeout").fetchone()[0]
    conn.close()
    assert timeout == BUSY_TIMEOUT_MS
