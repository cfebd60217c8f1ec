"""Document store over libSQL.

Collections of JSON documents kept in a single ``documents`` table and queried
with ``json_extract``.  The synchronous ``libsql`` driver runs in a worker
thread via ``asyncio.to_thread()``.  Connection target is determined by
settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → remote Turso
- **Dev/test**: no Turso env vars → local SQLite file via ``database_path``

No operation spans more than one document; there are no cross-document
transactions.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import libsql

from obligations.config import settings

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (collection, id)
)
"""

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@runtime_checkable
class DocumentStore(Protocol):
    """Capabilities the obligation stores need from a document database."""

    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document and return its store-assigned id."""
        ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document (with ``id``) or None."""
        ...

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> bool:
        """Shallow-merge *changes* into a document. Returns False if missing."""
        ...

    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if missing."""
        ...

    async def query_eq(
        self,
        collection: str,
        filters: dict[str, Any],
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Documents whose fields equal every value in *filters*."""
        ...

    async def query_in(
        self,
        collection: str,
        field: str,
        values: Iterable[Any],
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """Documents whose *field* is one of *values* (plus equality *filters*)."""
        ...


def make_doc_id() -> str:
    """Generate a new document ID."""
    return uuid.uuid4().hex


def _check_field(name: str) -> str:
    if not _FIELD_RE.match(name):
        msg = f"Invalid field name: {name!r}"
        raise ValueError(msg)
    return name


def _sql_value(value: Any) -> Any:
    """Match the value json_extract yields for the stored JSON value."""
    if isinstance(value, bool):
        return int(value)
    return value


def _where(
    filters: dict[str, Any], in_field: str | None = None, in_values: list[Any] | None = None
) -> tuple[str, list[Any]]:
    clauses = ["collection = ?"]
    params: list[Any] = []
    for name, value in filters.items():
        path = f"json_extract(data, '$.{_check_field(name)}')"
        if value is None:
            clauses.append(f"{path} IS NULL")
        else:
            clauses.append(f"{path} = ?")
            params.append(_sql_value(value))
    if in_field is not None:
        placeholders = ", ".join("?" for _ in in_values or [])
        clauses.append(
            f"json_extract(data, '$.{_check_field(in_field)}') IN ({placeholders})"
        )
        params.extend(_sql_value(v) for v in in_values or [])
    return " AND ".join(clauses), params


def _decode(doc_id: str, raw: str) -> dict[str, Any]:
    data = json.loads(raw)
    data["id"] = doc_id
    return data


class LibsqlDocumentStore:
    """DocumentStore backed by SQLite / Turso.

    Singleton accessed via ``LibsqlDocumentStore.shared()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: LibsqlDocumentStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def shared(cls) -> LibsqlDocumentStore:
        """Return the shared store instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    def _open(self) -> Any:
        if self._db_path is None and settings.turso_database_url:
            return libsql.connect(
                database=settings.turso_database_url,
                auth_token=settings.turso_auth_token,
            )
        path = self._db_path or settings.database_path
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = libsql.connect(str(path))
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    def _run_sync(self, sql: str, params: tuple, write: bool) -> tuple[list[tuple], int]:
        conn = self._open()
        try:
            if not self._initialised:
                conn.execute(_CREATE_TABLE)
                conn.commit()
                self._initialised = True
            cursor = conn.execute(sql, params)
            if write:
                conn.commit()
                return [], cursor.rowcount
            return cursor.fetchall(), cursor.rowcount
        finally:
            conn.close()

    async def _execute(
        self, sql: str, params: tuple = (), *, write: bool = False
    ) -> tuple[list[tuple], int]:
        return await asyncio.to_thread(self._run_sync, sql, params, write)

    async def _select(
        self,
        collection: str,
        where: str,
        params: list[Any],
        order_by: str | None,
        descending: bool,
    ) -> list[dict[str, Any]]:
        sql = f"SELECT id, data FROM documents WHERE {where}"
        if order_by:
            direction = "DESC" if descending else "ASC"
            sql += f" ORDER BY json_extract(data, '$.{_check_field(order_by)}') {direction}, id"
        rows, _ = await self._execute(sql, (collection, *params))
        return [_decode(row[0], row[1]) for row in rows]

    # -- CRUD ------------------------------------------------------------------

    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = make_doc_id()
        body = {k: v for k, v in data.items() if k != "id"}
        await self._execute(
            "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
            (collection, doc_id, json.dumps(body)),
            write=True,
        )
        logger.debug("Inserted %s/%s", collection, doc_id)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        rows, _ = await self._execute(
            "SELECT id, data FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
        )
        return _decode(rows[0][0], rows[0][1]) if rows else None

    async def update(self, collection: str, doc_id: str, changes: dict[str, Any]) -> bool:
        current = await self.get(collection, doc_id)
        if current is None:
            return False
        current.pop("id")
        current.update({k: v for k, v in changes.items() if k != "id"})
        _, count = await self._execute(
            "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
            (json.dumps(current), collection, doc_id),
            write=True,
        )
        return count > 0

    async def delete(self, collection: str, doc_id: str) -> bool:
        _, count = await self._execute(
            "DELETE FROM documents WHERE collection = ? AND id = ?",
            (collection, doc_id),
            write=True,
        )
        return count > 0

    # -- Queries ---------------------------------------------------------------

    async def query_eq(
        self,
        collection: str,
        filters: dict[str, Any],
        *,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        where, params = _where(filters)
        return await self._select(collection, where, params, order_by, descending)

    async def query_in(
        self,
        collection: str,
        field: str,
        values: Iterable[Any],
        *,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        wanted = list(values)
        if not wanted:
            return []
        where, params = _where(filters or {}, field, wanted)
        return await self._select(collection, where, params, order_by, descending)
