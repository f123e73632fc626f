"""Lexical retriever: substring term scoring + top-K / character-budget context.

Scoring (per chunk, per query term):
  + number of non-overlapping occurrences of the term in
    "{title} {url} {content}" (lowercased; substring, not word, matches)
  + 4 if the term occurs in the title
  + 3 if the term occurs in the URL

Downstream thresholds (min_topic_score) are tuned against these exact
substring semantics; token-boundary matching would change them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from sitechat.db.models import Chunk
from sitechat.db.repository import Repository

DEFAULT_TOP_K = 8
DEFAULT_MAX_CHARS = 12_000
DEFAULT_MIN_TOPIC_SCORE = 2
TOPIC_CHECK_MAX_CHARS = 1_200
# Always keep this many top-ranked chunks, even with a zero score.
_ALWAYS_KEEP = 2
_TITLE_BONUS = 4
_URL_BONUS = 3
_BLOCK_SEPARATOR = "\n\n"

_URL_RE = re.compile(r"https?://\S+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")


@dataclass
class ScoredChunk:
    chunk: Chunk
    score: int


@dataclass
class RetrievedContext:
    """Context handed to the inference service.

    Attributes:
        context: Labelled chunk blocks separated by blank lines.
        sources: Distinct source URLs of the included blocks, in order.
        best_score: Score of the top-ranked chunk (0 when nothing is indexed).
    """

    context: str = ""
    sources: list[str] = field(default_factory=list)
    best_score: int = 0


def tokenize(text: str) -> list[str]:
    """Lowercase terms longer than two characters; URLs and punctuation removed.

    No stopword filtering, and repeated terms are kept (each counts separately
    in scoring).
    """
    cleaned = _URL_RE.sub(" ", text.lower())
    cleaned = _NON_ALNUM_RE.sub(" ", cleaned)
    return [w for w in cleaned.split() if len(w) > 2]


def score_chunk(content: str, title: str, url: str, terms: list[str]) -> int:
    """Lexical relevance of one chunk to the query *terms*."""
    hay = f"{title} {url} {content}".lower()
    title_lower = title.lower()
    url_lower = url.lower()
    score = 0
    for term in terms:
        if not term:
            continue
        score += hay.count(term)
        if term in title_lower:
            score += _TITLE_BONUS
        if term in url_lower:
            score += _URL_BONUS
    return score


def rank_chunks(chunks: list[Chunk], query: str) -> list[ScoredChunk]:
    """Score *chunks* against *query* and sort best-first.

    The sort is stable: equal scores keep the storage order (url, chunk_id).
    """
    terms = tokenize(query)
    scored = [
        ScoredChunk(chunk=c, score=score_chunk(c.content, c.title, c.url, terms))
        for c in chunks
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def format_block(chunk: Chunk) -> str:
    return f"--- {chunk.title} ({chunk.url}) [chunk {chunk.chunk_id}] ---\n{chunk.content}"


def assemble_context(ranked: list[ScoredChunk], top_k: int, max_chars: int) -> tuple[str, list[str]]:
    """Select and join chunk blocks within *top_k* and *max_chars*.

    The first two ranked chunks are eligible regardless of score; the rest need
    a positive score. Assembly stops before the first block that would push the
    total length (separators included) past *max_chars*.

    Returns:
        (context, sources)
    """
    selected = [
        s for i, s in enumerate(ranked)
        if i < top_k and (s.score > 0 or i < _ALWAYS_KEEP)
    ]

    parts: list[str] = []
    sources: dict[str, None] = {}
    total = 0
    for item in selected:
        block = format_block(item.chunk)
        added = len(block) + (len(_BLOCK_SEPARATOR) if parts else 0)
        if total + added > max_chars:
            break
        parts.append(block)
        total += added
        sources[item.chunk.url] = None

    return _BLOCK_SEPARATOR.join(parts), list(sources)


def retrieve_context(
    repo: Repository,
    domain: str,
    query: str,
    top_k: int = DEFAULT_TOP_K,
    max_chars: int = DEFAULT_MAX_CHARS,
) -> RetrievedContext:
    """Return the best-matching context for *query* from *domain*'s index."""
    chunks = repo.get_chunks(domain)
    if not chunks:
        return RetrievedContext()

    ranked = rank_chunks(chunks, query)
    context, sources = assemble_context(ranked, top_k=top_k, max_chars=max_chars)
    return RetrievedContext(context=context, sources=sources, best_score=ranked[0].score)


def is_on_topic(
    repo: Repository,
    domain: str,
    query: str,
    min_score: int = DEFAULT_MIN_TOPIC_SCORE,
) -> bool:
    """True if the best chunk of *domain* scores at least *min_score* for *query*."""
    hits = retrieve_context(repo, domain, query, top_k=1, max_chars=TOPIC_CHECK_MAX_CHARS)
    return hits.best_score >= min_score
