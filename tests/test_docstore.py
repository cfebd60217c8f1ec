"""Tests for LibsqlDocumentStore — JSON documents over libsql."""

from pathlib import Path

import pytest

from obligations.docstore import DocumentStore, LibsqlDocumentStore

pytestmark = pytest.mark.usefixtures("_no_turso")


# -- insert / get --------------------------------------------------------------


async def test_insert_and_get(docs: LibsqlDocumentStore) -> None:
    doc_id = await docs.insert("things", {"name": "alpha", "size": 3})

    fetched = await docs.get("things", doc_id)
    assert fetched == {"id": doc_id, "name": "alpha", "size": 3}


async def test_insert_assigns_unique_ids(docs: LibsqlDocumentStore) -> None:
    a = await docs.insert("things", {"name": "a"})
    b = await docs.insert("things", {"name": "b"})
    assert a != b
    assert len(a) == 32


async def test_get_not_found(docs: LibsqlDocumentStore) -> None:
    assert await docs.get("things", "missing") is None


async def test_collections_are_separate(docs: LibsqlDocumentStore) -> None:
    doc_id = await docs.insert("things", {"name": "a"})
    assert await docs.get("others", doc_id) is None


async def test_creates_parent_dirs(tmp_path: Path) -> None:
    store = LibsqlDocumentStore(db_path=tmp_path / "nested" / "dir" / "test.db")
    await store.insert("things", {"name": "a"})
    assert (tmp_path / "nested" / "dir").exists()


# -- update / delete -----------------------------------------------------------


async def test_update_merges_fields(docs: LibsqlDocumentStore) -> None:
    doc_id = await docs.insert("things", {"name": "a", "status": "pending"})

    assert await docs.update("things", doc_id, {"status": "paid", "extra": 1}) is True

    fetched = await docs.get("things", doc_id)
    assert fetched == {"id": doc_id, "name": "a", "status": "paid", "extra": 1}


async def test_update_missing_returns_false(docs: LibsqlDocumentStore) -> None:
    assert await docs.update("things", "missing", {"status": "paid"}) is False


async def test_delete(docs: LibsqlDocumentStore) -> None:
    doc_id = await docs.insert("things", {"name": "a"})
    assert await docs.delete("things", doc_id) is True
    assert await docs.get("things", doc_id) is None


async def test_delete_missing_returns_false(docs: LibsqlDocumentStore) -> None:
    assert await docs.delete("things", "missing") is False


# -- query_eq ------------------------------------------------------------------


async def test_query_eq_filters_on_every_field(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"owner": "o1", "kind": "x"})
    await docs.insert("things", {"owner": "o1", "kind": "y"})
    await docs.insert("things", {"owner": "o2", "kind": "x"})

    rows = await docs.query_eq("things", {"owner": "o1", "kind": "x"})
    assert len(rows) == 1
    assert rows[0]["owner"] == "o1"
    assert rows[0]["kind"] == "x"


async def test_query_eq_matches_booleans(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"name": "on", "active": True})
    await docs.insert("things", {"name": "off", "active": False})

    rows = await docs.query_eq("things", {"active": True})
    assert [r["name"] for r in rows] == ["on"]


async def test_query_eq_none_matches_null(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"name": "a", "paid_at": None})
    await docs.insert("things", {"name": "b", "paid_at": "2024-01-01"})

    rows = await docs.query_eq("things", {"paid_at": None})
    assert [r["name"] for r in rows] == ["a"]


async def test_query_eq_ordering(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"due": "2024-03-01"})
    await docs.insert("things", {"due": "2024-01-01"})
    await docs.insert("things", {"due": "2024-02-01"})

    asc = await docs.query_eq("things", {}, order_by="due")
    assert [r["due"] for r in asc] == ["2024-01-01", "2024-02-01", "2024-03-01"]

    desc = await docs.query_eq("things", {}, order_by="due", descending=True)
    assert [r["due"] for r in desc] == ["2024-03-01", "2024-02-01", "2024-01-01"]


async def test_query_rejects_bad_field_name(docs: LibsqlDocumentStore) -> None:
    with pytest.raises(ValueError, match="Invalid field name"):
        await docs.query_eq("things", {"name') OR 1=1 --": "x"})


# -- query_in ------------------------------------------------------------------


async def test_query_in_membership(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"status": "pending", "due": "2024-01-03"})
    await docs.insert("things", {"status": "overdue", "due": "2024-01-01"})
    await docs.insert("things", {"status": "paid", "due": "2024-01-02"})

    rows = await docs.query_in("things", "status", ["pending", "overdue"], order_by="due")
    assert [r["status"] for r in rows] == ["overdue", "pending"]


async def test_query_in_with_filters(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"owner": "o1", "status": "pending"})
    await docs.insert("things", {"owner": "o2", "status": "pending"})

    rows = await docs.query_in("things", "status", ["pending"], filters={"owner": "o2"})
    assert len(rows) == 1
    assert rows[0]["owner"] == "o2"


async def test_query_in_empty_values(docs: LibsqlDocumentStore) -> None:
    await docs.insert("things", {"status": "pending"})
    assert await docs.query_in("things", "status", []) == []


# -- Protocol / singleton ------------------------------------------------------


def test_satisfies_protocol(docs: LibsqlDocumentStore) -> None:
    assert isinstance(docs, DocumentStore)


def test_singleton_shared() -> None:
    LibsqlDocumentStore._reset()
    try:
        a = LibsqlDocumentStore.shared()
        b = LibsqlDocumentStore.shared()
        assert a is b
    finally:
        LibsqlDocumentStore._reset()


def test_singleton_reset() -> None:
    LibsqlDocumentStore._reset()
    try:
        a = LibsqlDocumentStore.shared()
        LibsqlDocumentStore._reset()
        b = LibsqlDocumentStore.shared()
        assert a is not b
    finally:
        LibsqlDocumentStore._reset()
