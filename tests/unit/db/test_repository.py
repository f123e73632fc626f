"""Tests for Repository: chunk replacement, metadata, and site facts."""

from __future__ import annotations

import sqlite3

import pytest

from sitechat.db.models import PreparedPage, SiteFacts
from sitechat.db.repository import Repository, StoreWriteError

DOMAIN = "https://example.com"


def _pages() -> list[PreparedPage]:
    return [
        PreparedPage(url=f"{DOMAIN}/b", title="Bee", chunks=["b0", "b1"]),
        PreparedPage(url=f"{DOMAIN}/a", title="", chunks=["a0"]),
    ]


# ------------------------------------------------------------------
# replace_chunks
# ------------------------------------------------------------------


def test_replace_chunks_returns_counts(repo: Repository):
    stats = repo.replace_chunks(DOMAIN, "Example", _pages())
    assert stats.page_count == 2
    assert stats.chunk_count == 3


def test_replace_chunks_writes_meta(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    meta = repo.get_meta(DOMAIN)
    assert meta is not None
    assert meta.site_name == "Example"
    assert (meta.page_count, meta.chunk_count) == (2, 3)
    assert meta.indexed_at
    assert meta.ready


def test_get_chunks_ordered_by_url_then_chunk_id(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    chunks = repo.get_chunks(DOMAIN)
    assert [(c.url, c.chunk_id) for c in chunks] == [
        (f"{DOMAIN}/a", 0),
        (f"{DOMAIN}/b", 0),
        (f"{DOMAIN}/b", 1),
    ]


def test_empty_title_stored_as_untitled(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    titles = {c.url: c.title for c in repo.get_chunks(DOMAIN)}
    assert titles[f"{DOMAIN}/a"] == "Untitled"


def test_replace_drops_previous_chunks(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    repo.replace_chunks(DOMAIN, "Example", [PreparedPage(url=f"{DOMAIN}/c", title="C", chunks=["c0"])])
    chunks = repo.get_chunks(DOMAIN)
    assert [c.url for c in chunks] == [f"{DOMAIN}/c"]
    assert repo.get_meta(DOMAIN).chunk_count == 1


def test_replace_is_idempotent(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    first = [(c.url, c.chunk_id, c.content) for c in repo.get_chunks(DOMAIN)]
    repo.replace_chunks(DOMAIN, "Example", _pages())
    second = [(c.url, c.chunk_id, c.content) for c in repo.get_chunks(DOMAIN)]
    assert first == second


def test_replace_leaves_other_domains_alone(repo: Repository):
    repo.replace_chunks("https://other.com", "Other", [PreparedPage("https://other.com/", "O", ["o0"])])
    repo.replace_chunks(DOMAIN, "Example", _pages())
    assert len(repo.get_chunks("https://other.com")) == 1


def test_replace_failure_rolls_back(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    # Same (url, chunk_id) twice violates the primary key mid-transaction.
    bad = [
        PreparedPage(url=f"{DOMAIN}/x", title="X", chunks=["x0"]),
        PreparedPage(url=f"{DOMAIN}/x", title="X", chunks=["x0 again"]),
    ]
    with pytest.raises(StoreWriteError):
        repo.replace_chunks(DOMAIN, "Example", bad)

    chunks = repo.get_chunks(DOMAIN)
    assert len(chunks) == 3
    assert repo.get_meta(DOMAIN).chunk_count == 3


def test_store_write_error_is_runtime_error():
    assert issubclass(StoreWriteError, RuntimeError)


def test_get_chunks_unknown_domain_empty(repo: Repository):
    assert repo.get_chunks("https://nothing.test") == []


def test_get_meta_unknown_domain_none(repo: Repository):
    assert repo.get_meta("https://nothing.test") is None


def test_list_meta_sorted_by_domain(repo: Repository):
    repo.replace_chunks("https://zeta.com", "Z", [PreparedPage("https://zeta.com/", "Z", ["z"])])
    repo.replace_chunks("https://alpha.com", "A", [PreparedPage("https://alpha.com/", "A", ["a"])])
    assert [m.domain for m in repo.list_meta()] == ["https://alpha.com", "https://zeta.com"]


# ------------------------------------------------------------------
# Site facts
# ------------------------------------------------------------------


def test_put_and_get_facts(repo: Repository):
    facts = SiteFacts(owner_name="Jane Doe", owner_title="owner", phones=["555-123-4567"])
    repo.put_facts(DOMAIN, facts)
    assert repo.get_facts(DOMAIN) == facts


def test_put_facts_overwrites(repo: Repository):
    repo.put_facts(DOMAIN, SiteFacts(owner_name="Jane Doe", services=["Web design"]))
    repo.put_facts(DOMAIN, SiteFacts(hours="Mon-Fri 9-5"))
    stored = repo.get_facts(DOMAIN)
    assert stored.owner_name is None
    assert stored.services == []
    assert stored.hours == "Mon-Fri 9-5"


def test_replace_chunks_writes_facts(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages(), facts=SiteFacts(owner_name="Jane Doe"))
    assert repo.get_facts(DOMAIN).owner_name == "Jane Doe"


def test_replace_chunks_without_facts_keeps_stored_facts(repo: Repository):
    repo.put_facts(DOMAIN, SiteFacts(owner_name="Jane Doe"))
    repo.replace_chunks(DOMAIN, "Example", _pages())
    assert repo.get_facts(DOMAIN).owner_name == "Jane Doe"


def test_replace_chunks_facts_failure_rolls_back_chunks(repo: Repository, tmp_db: sqlite3.Connection):
    repo.replace_chunks(DOMAIN, "Example", _pages(), facts=SiteFacts(owner_name="Jane Doe"))
    tmp_db.execute(
        "CREATE TRIGGER fail_facts BEFORE UPDATE ON site_facts "
        "BEGIN SELECT RAISE(ABORT, 'facts locked'); END"
    )

    new = [PreparedPage(url=f"{DOMAIN}/new", title="New", chunks=["n0"])]
    with pytest.raises(StoreWriteError, match="facts locked"):
        repo.replace_chunks(DOMAIN, "Renamed", new, facts=SiteFacts(owner_name="John Roe"))

    assert len(repo.get_chunks(DOMAIN)) == 3
    assert repo.get_meta(DOMAIN).site_name == "Example"
    assert repo.get_facts(DOMAIN).owner_name == "Jane Doe"


def test_facts_stored_with_camel_case_keys(repo: Repository, tmp_db: sqlite3.Connection):
    repo.put_facts(DOMAIN, SiteFacts(owner_name="Jane Doe"))
    raw = tmp_db.execute("SELECT data FROM site_facts WHERE domain = ?", (DOMAIN,)).fetchone()[0]
    assert '"ownerName": "Jane Doe"' in raw


def test_get_facts_absent_none(repo: Repository):
    assert repo.get_facts(DOMAIN) is None


def test_get_facts_corrupt_blob_none(repo: Repository, tmp_db: sqlite3.Connection):
    tmp_db.execute("INSERT INTO site_facts (domain, data) VALUES (?, ?)", (DOMAIN, "{not json"))
    tmp_db.commit()
    assert repo.get_facts(DOMAIN) is None


def test_get_facts_non_object_blob_none(repo: Repository, tmp_db: sqlite3.Connection):
    tmp_db.execute("INSERT INTO site_facts (domain, data) VALUES (?, ?)", (DOMAIN, "[1, 2]"))
    tmp_db.commit()
    assert repo.get_facts(DOMAIN) is None


# ------------------------------------------------------------------
# delete_domain
# ------------------------------------------------------------------


def test_delete_domain_removes_everything(repo: Repository):
    repo.replace_chunks(DOMAIN, "Example", _pages())
    repo.put_facts(DOMAIN, SiteFacts(owner_name="Jane Doe"))
    deleted = repo.delete_domain(DOMAIN)
    assert deleted == 3
    assert repo.get_chunks(DOMAIN) == []
    assert repo.get_meta(DOMAIN) is None
    assert repo.get_facts(DOMAIN) is None


def test_delete_unknown_domain_returns_zero(repo: Repository):
    assert repo.delete_domain("https://nothing.test") == 0
