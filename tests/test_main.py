"""Tests for session wiring in obligations.main."""

import asyncio
from pathlib import Path

import pytest

from obligations.docstore import LibsqlDocumentStore
from obligations.main import build_session, main, run_session
from obligations.notifications.channels import LogChannel
from obligations.notifications.router import NotificationRouter

pytestmark = pytest.mark.usefixtures("_no_turso")


@pytest.fixture(autouse=True)
def _reset_singletons():
    NotificationRouter._reset()
    LibsqlDocumentStore._reset()
    yield
    NotificationRouter._reset()
    LibsqlDocumentStore._reset()


def test_build_session_registers_log_channel(docs: LibsqlDocumentStore) -> None:
    session = build_session("owner-1", docs)

    router = NotificationRouter.get()
    assert router.list_channels() == ["log"]
    assert router.default_channel_name == "log"
    assert session.owner_id == "owner-1"
    assert session.engine.running is False


def test_build_session_keeps_host_channels(docs: LibsqlDocumentStore) -> None:
    router = NotificationRouter.get()
    router.register_channel(LogChannel("webpush"))

    build_session("owner-1", docs)

    assert router.list_channels() == ["webpush"]
    assert router.default_channel_name == ""


async def test_build_session_defaults_to_shared_store(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("obligations.config.settings.database_path", tmp_path / "default.db")

    session = build_session("owner-1")

    assert await session.service.list_templates() == []
    assert (tmp_path / "default.db").exists()


async def test_build_session_service_is_usable(docs: LibsqlDocumentStore) -> None:
    session = build_session("owner-1", docs)
    assert await session.service.list_templates() == []
    report = await session.runner.run()
    assert report is not None
    assert report.generated == 0


async def test_run_session_stops_on_event(docs: LibsqlDocumentStore) -> None:
    session = build_session("owner-1", docs)
    stop = asyncio.Event()
    stop.set()

    await run_session(session, stop)

    assert session.engine.running is False


def test_main_requires_owner(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("obligations.config.settings.owner_id", "")
    with pytest.raises(SystemExit):
        main()
