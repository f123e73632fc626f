"""sitechat ingest pipeline: extractor, crawler, chunker, fact extractor."""

from sitechat.ingest.chunker import TextChunker
from sitechat.ingest.crawler import Crawler, FetchResponse, UrllibFetcher
from sitechat.ingest.extractor import ExtractedPage, extract_text
from sitechat.ingest.facts import extract_facts

__all__ = [
    "Crawler",
    "ExtractedPage",
    "FetchResponse",
    "TextChunker",
    "UrllibFetcher",
    "extract_facts",
    "extract_text",
]
