"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from sitechat.db.connection import Database
from sitechat.db.repository import Repository
from sitechat.db.schema import initialize
from sitechat.ingest.crawler import FetchResponse

_ENV_VARS = (
    "DOMAINNAME",
    "SITE_DOMAIN",
    "SITE_NAME",
    "SCRAPER_MAX_PAGES",
    "SCRAPER_CONCURRENCY",
    "SCRAPER_TIMEOUT_MS",
    "SCRAPER_EXTRA_URLS",
    "RAG_CHUNK_SIZE",
    "RAG_CHUNK_OVERLAP",
    "RAG_TOP_K",
    "RAG_MAX_CONTEXT_CHARS",
    "RAG_MIN_TOPIC_SCORE",
    "SITECHAT_GENERATION_MODEL",
    "SITECHAT_MAX_TOKENS",
    "AI_RULES_FILE",
    "CONTACT_POLICY_ENABLE",
    "STRICT_TOPIC_GUARD",
    "TOPIC_MIN_OVERLAP",
)


class FakeFetcher:
    """In-memory fetch service: known URLs serve HTML, everything else 404s.

    *pages* maps URL → HTML string or a ready FetchResponse. Every requested URL
    is recorded in ``calls``.
    """

    def __init__(self, pages: dict[str, str | FetchResponse] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[str] = []

    def fetch(self, url: str, timeout: float) -> FetchResponse:
        self.calls.append(url)
        page = self.pages.get(url)
        if page is None:
            return FetchResponse(status=404, headers={"content-type": "text/html"})
        if isinstance(page, FetchResponse):
            return page
        return FetchResponse(
            status=200, headers={"content-type": "text/html; charset=utf-8"}, body=page
        )


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch, tmp_path):
    """Keep the developer's environment and ~/.sitechat out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("sitechat.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / "cache.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def repo(tmp_db):
    return Repository(tmp_db)


@pytest.fixture
def fake_fetcher():
    """Factory: ``fake_fetcher({url: html})`` → FakeFetcher."""
    return FakeFetcher
