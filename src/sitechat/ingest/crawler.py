"""Same-origin website crawler: seed paths + sitemaps + breadth-first links.

Fetch rules:
- Only same-origin http(s) URLs are visited; fragments and query strings are
  dropped; known binary/asset extensions are skipped.
- Pages are fetched in batches of ``concurrency`` on a thread pool; each batch
  finishes before its discovered links are queued.
- Every request carries a hard timeout. Failed, timed-out, non-2xx and
  non-HTML responses are dropped without retry.
"""

from __future__ import annotations

import logging
import re
import time
import urllib.error
import urllib.request
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Protocol
from urllib.parse import urljoin, urlsplit, urlunsplit

from sitechat.config import CrawlCfg
from sitechat.db.models import Page
from sitechat.ingest.extractor import MIN_TEXT_CHARS, ExtractedPage, extract_text

logger = logging.getLogger(__name__)

_USER_AGENT = "SiteChatBot/1.0 (scraper)"
_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
_READ_BLOCK = 64 * 1024
MAX_PAGE_CHARS = 8_000
MAX_SITEMAPS = 40

_SKIP_EXTENSIONS = frozenset(
    [
        "png", "jpg", "jpeg", "gif", "svg", "css", "js", "pdf", "zip",
        "ico", "woff", "woff2", "ttf", "mp4", "mp3", "webp",
    ]
)
_PRIORITY_PATHS = (
    "/",
    "/about",
    "/about/",
    "/about-us",
    "/about-us/",
    "/contact",
    "/contact/",
    "/contact-us",
    "/contact-us/",
    "/services",
    "/services/",
    "/web-development-design/",
)
_SITEMAP_PATHS = ("/sitemap.xml", "/wp-sitemap.xml")
_CORE_PAGE_RE = re.compile(r"(/about|/about-us|/contact|/contact-us|/services)(/|$)", re.IGNORECASE)
_LOC_RE = re.compile(r"<loc>(.*?)</loc>", re.IGNORECASE)
_SITEMAP_RE = re.compile(r"sitemap", re.IGNORECASE)
_DEFAULT_PORTS = {"http": 80, "https": 443}

# Everything a single fetch may raise: network errors and timeouts (OSError,
# including urllib.error.URLError), protocol errors, and malformed URLs.
_FETCH_ERRORS = (OSError, HTTPException, ValueError)


# ------------------------------------------------------------------
# Fetch service
# ------------------------------------------------------------------


@dataclass
class FetchResponse:
    status: int
    headers: dict[str, str] = field(default_factory=dict)  # lower-cased names
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "").lower()


class Fetcher(Protocol):
    def fetch(self, url: str, timeout: float) -> FetchResponse:
        """GET *url*. HTTP error statuses are returned, network failures raise."""
        ...


class UrllibFetcher:
    """Fetcher backed by ``urllib.request`` (follows redirects).

    urllib applies *timeout* to each socket operation only, so the body is
    read in blocks against a deadline for the whole request. A server that
    trickles bytes is cut off with ``TimeoutError`` once *timeout* has elapsed
    (overshooting by at most one socket read).
    """

    def fetch(self, url: str, timeout: float) -> FetchResponse:
        deadline = time.monotonic() + timeout
        request = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        try:
            response = urllib.request.urlopen(request, timeout=timeout)
        except urllib.error.HTTPError as exc:
            headers = {k.lower(): v for k, v in (exc.headers or {}).items()}
            exc.close()
            return FetchResponse(status=exc.code, headers=headers)

        with response:
            headers = {k.lower(): v for k, v in response.headers.items()}
            raw = _read_body(response, deadline)
            charset = response.headers.get_content_charset() or "utf-8"
            try:
                body = raw.decode(charset, errors="replace")
            except LookupError:
                body = raw.decode("utf-8", errors="replace")
            return FetchResponse(status=response.status, headers=headers, body=body)


def _read_body(response, deadline: float) -> bytes:
    """Read up to _MAX_BYTES of *response*, raising TimeoutError past *deadline*."""
    parts: list[bytes] = []
    size = 0
    while size < _MAX_BYTES:
        if time.monotonic() > deadline:
            raise TimeoutError(f"Download exceeded the request timeout after {size} bytes")
        block = response.read1(min(_READ_BLOCK, _MAX_BYTES - size))
        if not block:
            break
        parts.append(block)
        size += len(block)
    return b"".join(parts)


# ------------------------------------------------------------------
# URL helpers
# ------------------------------------------------------------------


def _origin(scheme: str, host: str, port: int | None) -> str:
    if port is None or _DEFAULT_PORTS.get(scheme) == port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{port}"


def normalize_url(href: str, base: str) -> str | None:
    """Resolve *href* against *base* and return a canonical same-origin URL.

    Fragment and query string are removed. Returns None for other origins,
    non-http(s) schemes, skipped asset extensions, and unparsable input.
    """
    try:
        parts = urlsplit(urljoin(base, href.strip()))
        base_parts = urlsplit(base)
        port = parts.port
        base_port = base_parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in _DEFAULT_PORTS or not parts.hostname:
        return None
    origin = _origin(scheme, parts.hostname, port)
    base_origin = _origin(base_parts.scheme.lower(), base_parts.hostname or "", base_port)
    if origin != base_origin:
        return None

    path = parts.path or "/"
    ext = path.rsplit(".", 1)[-1].lower()
    if ext in _SKIP_EXTENSIONS:
        return None

    return urlunsplit((scheme, origin.split("://", 1)[1], path, "", ""))


def build_seed_queue(base: str, extra_urls: list[str] | None = None) -> list[str]:
    """Return the de-duplicated seed URLs: root, priority paths, extra URLs."""
    seeds: dict[str, None] = {}
    for href in (base, *_PRIORITY_PATHS, *(extra_urls or [])):
        normalized = normalize_url(href, base)
        if normalized:
            seeds[normalized] = None
    return list(seeds)


def decode_xml(text: str) -> str:
    """Decode the five predefined XML entities."""
    return (
        text.replace("&amp;", "&")
        .replace("&lt;", "<")
        .replace("&gt;", ">")
        .replace("&quot;", '"')
        .replace("&#39;", "'")
    )


def extract_sitemap_urls(xml: str) -> list[str]:
    """Return every ``<loc>`` value in *xml*, entity-decoded, in document order."""
    urls: list[str] = []
    for match in _LOC_RE.finditer(xml):
        url = decode_xml(match.group(1).strip())
        if url:
            urls.append(url)
    return urls


def is_core_page(url: str) -> bool:
    """True for about / contact / services URLs, which are crawled first."""
    return _CORE_PAGE_RE.search(url) is not None


# ------------------------------------------------------------------
# Crawler
# ------------------------------------------------------------------


class Crawler:
    """Breadth-first, budget-bounded crawler for one website.

    Stateless between ``crawl()`` calls; one instance may crawl several domains
    sequentially but is not safe for concurrent crawls.
    """

    def __init__(self, config: CrawlCfg | None = None, fetcher: Fetcher | None = None) -> None:
        self.config = config or CrawlCfg()
        self.fetcher: Fetcher = fetcher or UrllibFetcher()

    @property
    def timeout(self) -> float:
        return self.config.timeout_ms / 1000

    def crawl(self, domain: str) -> list[Page]:
        """Crawl *domain* and return every page with usable text.

        Args:
            domain: Site origin, e.g. ``https://example.com``.

        Returns:
            Pages in discovery order within each batch (may be empty).
        """
        logger.info("Starting scrape of %s", domain)
        concurrency = max(1, self.config.concurrency)

        visited: set[str] = set()
        queue: deque[str] = deque(build_seed_queue(domain, self.config.extra_urls))
        sitemap_urls = self.discover_sitemap_urls(domain)
        queue.extend(sitemap_urls)
        logger.info("Loaded %d URLs from sitemaps", len(sitemap_urls))

        pages: list[Page] = []
        with ThreadPoolExecutor(max_workers=concurrency) as pool:
            while queue and self._can_visit_more(visited):
                batch: list[str] = []
                while queue and len(batch) < concurrency:
                    url = queue.popleft()
                    if url not in visited and self._can_visit_more(visited):
                        visited.add(url)
                        batch.append(url)
                if not batch:
                    break

                discovered: list[str] = []
                for url, extracted in zip(batch, pool.map(self._fetch_page, batch)):
                    if extracted is None:
                        continue
                    if len(extracted.text) < MIN_TEXT_CHARS:
                        logger.debug("Skipping near-empty page %s", url)
                        continue
                    pages.append(
                        Page(url=url, title=extracted.title, content=extracted.text[:MAX_PAGE_CHARS])
                    )
                    logger.info("Scraped: %s (%d chars)", url, len(extracted.text))
                    for href in extracted.links:
                        normalized = normalize_url(href, url)
                        if normalized and normalized not in visited:
                            discovered.append(normalized)

                core = [u for u in discovered if is_core_page(u)]
                rest = [u for u in discovered if not is_core_page(u)]
                queue.extend(core)
                queue.extend(rest)

        logger.info("Done. Scraped %d pages from %s", len(pages), domain)
        return pages

    def discover_sitemap_urls(self, domain: str) -> list[str]:
        """Walk ``/sitemap.xml`` and ``/wp-sitemap.xml`` breadth-first.

        Nested sitemaps are followed up to MAX_SITEMAPS distinct files.
        Unreachable or non-XML sitemaps are skipped.

        Returns:
            De-duplicated, normalised page URLs.
        """
        seen: set[str] = set()
        queue: deque[str] = deque(urljoin(domain, p) for p in _SITEMAP_PATHS)
        found: dict[str, None] = {}

        while queue and len(seen) < MAX_SITEMAPS:
            sitemap = queue.popleft()
            if sitemap in seen:
                continue
            seen.add(sitemap)

            try:
                response = self.fetcher.fetch(sitemap, self.timeout)
            except _FETCH_ERRORS as exc:
                logger.debug("Sitemap %s unavailable: %s", sitemap, exc)
                continue
            if not response.ok:
                logger.debug("Sitemap %s returned HTTP %d", sitemap, response.status)
                continue
            content_type = response.content_type
            if "xml" not in content_type and "text" not in content_type:
                logger.debug("Sitemap %s has content type %r", sitemap, content_type)
                continue

            for loc in extract_sitemap_urls(response.body):
                normalized = normalize_url(loc, domain)
                if not normalized:
                    continue
                if normalized.endswith(".xml") or _SITEMAP_RE.search(normalized):
                    queue.append(normalized)
                else:
                    found[normalized] = None

        return list(found)

    def _can_visit_more(self, visited: set[str]) -> bool:
        return self.config.max_pages <= 0 or len(visited) < self.config.max_pages

    def _fetch_page(self, url: str) -> ExtractedPage | None:
        """Fetch and extract one page; None if it failed or is not HTML."""
        try:
            response = self.fetcher.fetch(url, self.timeout)
        except _FETCH_ERRORS as exc:
            logger.debug("Fetch failed for %s: %s", url, exc)
            return None
        if not response.ok or "text/html" not in response.content_type:
            logger.debug("Dropping %s (HTTP %d, %r)", url, response.status, response.content_type)
            return None
        return extract_text(response.body)
