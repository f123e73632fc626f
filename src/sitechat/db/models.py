"""Domain models for the RAG index."""

from __future__ import annotations

import json
from dataclasses import dataclass, field


@dataclass
class Page:
    """A crawled page. Exists only for the duration of one rebuild."""

    url: str
    title: str
    content: str


@dataclass
class PreparedPage:
    """A page split into chunk texts, ready for ``Repository.replace_chunks``."""

    url: str
    title: str
    chunks: list[str] = field(default_factory=list)


@dataclass
class Chunk:
    domain: str
    url: str
    title: str
    chunk_id: int
    content: str
    updated_at: str | None = None


@dataclass
class IndexMeta:
    domain: str
    site_name: str | None
    page_count: int
    chunk_count: int
    indexed_at: str

    @property
    def ready(self) -> bool:
        return self.chunk_count > 0


@dataclass
class IndexStats:
    page_count: int
    chunk_count: int


@dataclass
class SiteFacts:
    """Deterministic facts extracted from a site's pages.

    Stored as one JSON blob per domain, using camelCase keys.
    """

    owner_name: str | None = None
    owner_title: str | None = None
    phones: list[str] = field(default_factory=list)
    emails: list[str] = field(default_factory=list)
    addresses: list[str] = field(default_factory=list)
    hours: str | None = None
    services: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(
            {
                "ownerName": self.owner_name,
                "ownerTitle": self.owner_title,
                "phones": self.phones,
                "emails": self.emails,
                "addresses": self.addresses,
                "hours": self.hours,
                "services": self.services,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> SiteFacts:
        """Parse a stored blob. Missing keys fall back to empty values.

        Raises:
            ValueError: If *raw* is not a JSON object.
        """
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("site facts blob must be a JSON object")
        return cls(
            owner_name=data.get("ownerName"),
            owner_title=data.get("ownerTitle"),
            phones=list(data.get("phones") or []),
            emails=list(data.get("emails") or []),
            addresses=list(data.get("addresses") or []),
            hours=data.get("hours"),
            services=list(data.get("services") or []),
        )
