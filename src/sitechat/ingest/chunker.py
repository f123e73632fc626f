"""Page text chunker: fixed character window with overlap."""

from __future__ import annotations

from sitechat.db.models import Page, PreparedPage
from sitechat.ingest.extractor import collapse_whitespace


class TextChunker:
    """Split page text into overlapping fixed-size character windows.

    Default: 1100 characters per window, 180 characters shared between
    consecutive windows (stride 920). Text is whitespace-normalised first;
    text no longer than one window yields exactly one chunk.
    """

    def __init__(self, chunk_size: int = 1_100, overlap: int = 180) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def split(self, text: str) -> list[str]:
        """Return the chunk texts for *text*, in order (chunk_id = index)."""
        normalized = collapse_whitespace(text)
        if not normalized:
            return []
        if len(normalized) <= self.chunk_size:
            return [normalized]

        chunks: list[str] = []
        start = 0
        length = len(normalized)
        while start < length:
            end = min(length, start + self.chunk_size)
            chunks.append(normalized[start:end])
            if end >= length:
                break
            start = end - self.overlap
        return chunks

    def prepare(self, page: Page) -> PreparedPage:
        """Chunk one crawled page for storage."""
        return PreparedPage(
            url=page.url,
            title=page.title or "Untitled",
            chunks=self.split(page.content),
        )
