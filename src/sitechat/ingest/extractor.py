"""HTML → title, main-content text, and outbound links."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup

# Minimum extracted text length for a page to be kept by the crawler.
MIN_TEXT_CHARS = 20

_STRIP_SELECTOR = (
    "script, style, nav, footer, header, noscript, iframe, svg, form, "
    "[role='navigation'], [role='banner'], [aria-hidden='true']"
)
_MAIN_SELECTORS = ("main", "article", "[role='main']", "#content", ".content", "#main")
_WS_RE = re.compile(r"\s+")


@dataclass
class ExtractedPage:
    title: str
    text: str
    links: list[str] = field(default_factory=list)


def collapse_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim."""
    return _WS_RE.sub(" ", text).strip()


def extract_text(html: str) -> ExtractedPage:
    """Extract the page title, main-content text, and every anchor href.

    Links are collected from the raw document *before* navigation, header,
    and footer elements are stripped, so site-wide menus still feed the crawl
    frontier. Content comes from the first matching main-content region,
    falling back to the body.
    """
    soup = BeautifulSoup(html, "html.parser")

    title = _first_text(soup, "title") or _first_text(soup, "h1")

    links = [a["href"] for a in soup.find_all("a", href=True) if a["href"]]

    for tag in soup.select(_STRIP_SELECTOR):
        tag.extract()

    text = ""
    for selector in _MAIN_SELECTORS:
        matches = soup.select(selector)
        if matches:
            text = collapse_whitespace("".join(m.get_text() for m in matches))
            break
    if not text:
        root = soup.body or soup
        text = collapse_whitespace(root.get_text())

    return ExtractedPage(title=title, text=text, links=links)


def _first_text(soup: BeautifulSoup, name: str) -> str:
    tag = soup.find(name)
    return tag.get_text().strip() if tag else ""
