"""Retrieval, index orchestration, and answering."""

from sitechat.rag.indexer import (
    CrawlEmptyError,
    IndexBuildError,
    IndexBusyError,
    IndexEmptyError,
    IndexState,
    IndexStatus,
    build_index,
    ensure_index,
    refresh_index,
)
from sitechat.rag.retriever import RetrievedContext, is_on_topic, retrieve_context

__all__ = [
    "CrawlEmptyError",
    "IndexBuildError",
    "IndexBusyError",
    "IndexEmptyError",
    "IndexState",
    "IndexStatus",
    "RetrievedContext",
    "build_index",
    "ensure_index",
    "is_on_topic",
    "refresh_index",
    "retrieve_context",
]
