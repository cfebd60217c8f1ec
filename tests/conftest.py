"""Shared test fixtures."""

from pathlib import Path

import pytest

from obligations.docstore import LibsqlDocumentStore
from obligations.instances import ObligationStore
from obligations.templates import TemplateStore


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("obligations.config.settings.turso_database_url", "")


@pytest.fixture
def docs(tmp_path: Path, _no_turso) -> LibsqlDocumentStore:
    """A document store backed by a temp database."""
    return LibsqlDocumentStore(db_path=tmp_path / "test.db")


@pytest.fixture
def templates(docs: LibsqlDocumentStore) -> TemplateStore:
    return TemplateStore(docs, "owner-1")


@pytest.fixture
def instances(docs: LibsqlDocumentStore) -> ObligationStore:
    return ObligationStore(docs, "owner-1")
