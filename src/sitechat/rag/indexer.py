"""Index orchestration: crawl → chunk → store, plus the cached fast path.

build_index() always crawls; ensure_index() reuses a non-empty stored index
unless forced. Both validate the crawl result before anything is written, so a
failed rebuild never wipes the previous index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sitechat.config import ConfigError, SiteChatConfig
from sitechat.db.repository import Repository
from sitechat.ingest.chunker import TextChunker
from sitechat.ingest.crawler import Crawler, Fetcher
from sitechat.ingest.facts import extract_facts

logger = logging.getLogger(__name__)


class IndexBuildError(RuntimeError):
    """Base class for failures that abort an index rebuild."""


class CrawlEmptyError(IndexBuildError):
    """The crawl produced no usable pages."""


class IndexEmptyError(IndexBuildError):
    """The crawled pages produced no chunks."""


class IndexBusyError(IndexBuildError):
    """A rebuild is already running for this state object."""


@dataclass
class IndexStatus:
    """Result of build_index() and ensure_index().

    Attributes:
        built: True when this call crawled and wrote the index, False when the
            stored index was reused.
    """

    domain: str
    site_name: str | None
    page_count: int
    chunk_count: int
    indexed_at: str | None
    built: bool


@dataclass
class IndexState:
    """Build status shared between a long-running caller and its rebuilds.

    Attributes:
        indexing: A rebuild is in progress.
        ready: The last rebuild (or cache check) found a non-empty index.
        error: Message of the last failure, None after a success.
    """

    indexing: bool = False
    ready: bool = False
    error: str | None = None


def build_index(
    repo: Repository,
    domain: str,
    site_name: str | None,
    config: SiteChatConfig,
    fetcher: Fetcher | None = None,
) -> IndexStatus:
    """Crawl *domain*, replace its stored chunks, and refresh its site facts.

    Args:
        repo: Open repository.
        domain: Canonical origin, e.g. ``https://example.com``.
        site_name: Stored with the index metadata.
        config: Crawl and chunking settings are read from here.
        fetcher: Fetch service override (tests inject an in-memory one).

    Returns:
        Status of the written index (``built=True``).

    Raises:
        ConfigError: Chunking settings are invalid; raised before any fetch.
        CrawlEmptyError: No pages were scraped; nothing is written.
        IndexEmptyError: Pages were scraped but yielded no chunks; nothing is written.
        StoreWriteError: The replace transaction failed and was rolled back;
            chunks, metadata and facts all keep their previous values.
    """
    chunker = _make_chunker(config)
    pages = Crawler(config.crawl, fetcher=fetcher).crawl(domain)
    if not pages:
        raise CrawlEmptyError(
            f"Indexing failed for {domain}: no pages were scraped. "
            "Check that the domain is reachable and serves HTML."
        )

    prepared = [chunker.prepare(page) for page in pages]
    if not any(p.chunks for p in prepared):
        raise IndexEmptyError(f"Indexing failed for {domain}: pages had no indexable text.")

    stats = repo.replace_chunks(domain, site_name, prepared, facts=extract_facts(pages))
    logger.info(
        "Indexed %s: %d pages, %d chunks", domain, stats.page_count, stats.chunk_count
    )
    meta = repo.get_meta(domain)
    return IndexStatus(
        domain=domain,
        site_name=site_name,
        page_count=stats.page_count,
        chunk_count=stats.chunk_count,
        indexed_at=meta.indexed_at if meta else None,
        built=True,
    )


def ensure_index(
    repo: Repository,
    domain: str,
    site_name: str | None,
    config: SiteChatConfig,
    force: bool = False,
    fetcher: Fetcher | None = None,
) -> IndexStatus:
    """Return the stored index of *domain*, building it first if needed.

    A stored index with at least one chunk is reused without any network
    activity unless *force* is set. Errors from build_index() propagate.
    """
    meta = repo.get_meta(domain)
    if meta is not None and meta.ready and not force:
        logger.debug("Using cached index for %s (%d chunks)", domain, meta.chunk_count)
        return IndexStatus(
            domain=domain,
            site_name=meta.site_name or site_name,
            page_count=meta.page_count,
            chunk_count=meta.chunk_count,
            indexed_at=meta.indexed_at,
            built=False,
        )

    return build_index(repo, domain, site_name, config, fetcher=fetcher)


def refresh_index(
    state: IndexState,
    repo: Repository,
    domain: str,
    site_name: str | None,
    config: SiteChatConfig,
    force: bool = False,
    fetcher: Fetcher | None = None,
) -> IndexStatus:
    """Run ensure_index() guarded by *state*.

    Raises:
        IndexBusyError: If *state* already has a rebuild in progress.
    """
    if state.indexing:
        raise IndexBusyError(f"Already indexing {domain}.")

    state.indexing = True
    try:
        status = ensure_index(repo, domain, site_name, config, force=force, fetcher=fetcher)
    except Exception as exc:
        state.ready = False
        state.error = str(exc) or "Indexing failed"
        raise
    finally:
        state.indexing = False

    state.ready = status.chunk_count > 0
    state.error = None if state.ready else "Index has zero chunks."
    return status


def _make_chunker(config: SiteChatConfig) -> TextChunker:
    try:
        return TextChunker(config.chunking.chunk_size, config.chunking.overlap)
    except ValueError as exc:
        raise ConfigError(f"Invalid chunking settings: {exc}") from exc
