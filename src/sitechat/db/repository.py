"""Repository pattern for the per-domain RAG index.

Single interface for: chunks, index metadata, and site facts.
Every rebuild replaces a domain's chunk set inside one transaction, so readers
see either the previous or the new index, never a mix.
"""

from __future__ import annotations

import json
import sqlite3

from sitechat.db.models import Chunk, IndexMeta, IndexStats, PreparedPage, SiteFacts


class StoreWriteError(RuntimeError):
    """Raised when a write transaction fails and has been rolled back."""


class Repository:
    """Data access layer for chunks, index metadata, and site facts.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see sitechat.db.schema.initialize).
        """
        self._conn = conn

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    def replace_chunks(
        self,
        domain: str,
        site_name: str | None,
        pages: list[PreparedPage],
        facts: SiteFacts | None = None,
    ) -> IndexStats:
        """Atomically replace every chunk of *domain* and upsert its metadata and facts.

        Args:
            domain: Canonical origin, e.g. ``https://example.com``.
            site_name: Human-readable site name stored with the metadata.
            pages: Pages with their chunk texts; ``chunk_id`` is the position
                of the text within ``page.chunks``.
            facts: Site facts written in the same transaction; None leaves the
                stored facts untouched.

        Returns:
            Page and chunk counts written.

        Raises:
            StoreWriteError: If any statement fails. The transaction is rolled
                back and the previous index for *domain* is left intact.
        """
        page_count = 0
        chunk_count = 0
        try:
            with self._conn:
                self._conn.execute("DELETE FROM rag_chunks WHERE domain = ?", (domain,))
                for page in pages:
                    page_count += 1
                    for chunk_id, text in enumerate(page.chunks):
                        self._conn.execute(
                            """
                            INSERT INTO rag_chunks (domain, url, title, chunk_id, content, updated_at)
                            VALUES (?, ?, ?, ?, ?, datetime('now'))
                            """,
                            (domain, page.url, page.title or "Untitled", chunk_id, text),
                        )
                        chunk_count += 1
                self._conn.execute(
                    """
                    INSERT INTO rag_meta (domain, site_name, page_count, chunk_count, indexed_at)
                    VALUES (?, ?, ?, ?, datetime('now'))
                    ON CONFLICT(domain) DO UPDATE SET
                        site_name = excluded.site_name,
                        page_count = excluded.page_count,
                        chunk_count = excluded.chunk_count,
                        indexed_at = datetime('now')
                    """,
                    (domain, site_name, page_count, chunk_count),
                )
                if facts is not None:
                    self._upsert_facts(domain, facts)
        except sqlite3.Error as exc:
            raise StoreWriteError(
                f"Failed to replace the index for '{domain}': {exc}. "
                "The previous index was kept."
            ) from exc

        return IndexStats(page_count=page_count, chunk_count=chunk_count)

    def get_chunks(self, domain: str) -> list[Chunk]:
        """Return every chunk of *domain* ordered by (url, chunk_id).

        The order is stable so equal retrieval scores rank reproducibly.
        """
        rows = self._conn.execute(
            """
            SELECT domain, url, title, chunk_id, content, updated_at
            FROM rag_chunks
            WHERE domain = ?
            ORDER BY url, chunk_id
            """,
            (domain,),
        ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    # ------------------------------------------------------------------
    # Index metadata
    # ------------------------------------------------------------------

    def get_meta(self, domain: str) -> IndexMeta | None:
        """Return the index metadata for *domain*, or None if never indexed."""
        row = self._conn.execute(
            """
            SELECT domain, site_name, page_count, chunk_count, indexed_at
            FROM rag_meta WHERE domain = ?
            """,
            (domain,),
        ).fetchone()
        return _row_to_meta(row) if row else None

    def list_meta(self) -> list[IndexMeta]:
        """Return metadata for every indexed domain, ordered by domain."""
        rows = self._conn.execute(
            "SELECT domain, site_name, page_count, chunk_count, indexed_at FROM rag_meta ORDER BY domain"
        ).fetchall()
        return [_row_to_meta(r) for r in rows]

    # ------------------------------------------------------------------
    # Site facts
    # ------------------------------------------------------------------

    def put_facts(self, domain: str, facts: SiteFacts) -> None:
        """Upsert the facts blob for *domain*, overwriting any previous one.

        Raises:
            StoreWriteError: If the write fails.
        """
        try:
            with self._conn:
                self._upsert_facts(domain, facts)
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Failed to store site facts for '{domain}': {exc}") from exc

    def _upsert_facts(self, domain: str, facts: SiteFacts) -> None:
        self._conn.execute(
            """
            INSERT INTO site_facts (domain, data, updated_at)
            VALUES (?, ?, datetime('now'))
            ON CONFLICT(domain) DO UPDATE SET
                data = excluded.data,
                updated_at = datetime('now')
            """,
            (domain, facts.to_json()),
        )

    def get_facts(self, domain: str) -> SiteFacts | None:
        """Return the stored facts for *domain*, or None if absent or unreadable."""
        row = self._conn.execute(
            "SELECT data FROM site_facts WHERE domain = ?", (domain,)
        ).fetchone()
        if not row:
            return None
        try:
            return SiteFacts.from_json(row["data"])
        except (ValueError, json.JSONDecodeError):
            return None

    # ------------------------------------------------------------------
    # Domain removal
    # ------------------------------------------------------------------

    def delete_domain(self, domain: str) -> int:
        """Delete chunks, metadata, and facts of *domain* in one transaction.

        Returns:
            Number of chunk rows deleted.
        """
        try:
            with self._conn:
                cur = self._conn.execute("DELETE FROM rag_chunks WHERE domain = ?", (domain,))
                deleted = cur.rowcount
                self._conn.execute("DELETE FROM rag_meta WHERE domain = ?", (domain,))
                self._conn.execute("DELETE FROM site_facts WHERE domain = ?", (domain,))
        except sqlite3.Error as exc:
            raise StoreWriteError(f"Failed to remove '{domain}': {exc}") from exc
        return deleted


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_chunk(row: sqlite3.Row) -> Chunk:
    return Chunk(
        domain=row["domain"],
        url=row["url"],
        title=row["title"],
        chunk_id=row["chunk_id"],
        content=row["content"],
        updated_at=row["updated_at"],
    )


def _row_to_meta(row: sqlite3.Row) -> IndexMeta:
    return IndexMeta(
        domain=row["domain"],
        site_name=row["site_name"],
        page_count=row["page_count"],
        chunk_count=row["chunk_count"],
        indexed_at=row["indexed_at"],
    )
