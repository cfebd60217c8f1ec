"""Obligations session entry point."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from obligations.config import settings
from obligations.docstore import LibsqlDocumentStore
from obligations.instances import ObligationStore
from obligations.notifications.channels import LogChannel
from obligations.notifications.dispatcher import NotificationDispatcher
from obligations.notifications.router import NotificationRouter
from obligations.overdue import OverdueTransitioner
from obligations.payments import DocumentPaymentRecorder, PaymentService
from obligations.scheduler.engine import SchedulerEngine
from obligations.scheduler.runner import SchedulerRunner
from obligations.service import RecurringObligationService
from obligations.templates import TemplateStore

if TYPE_CHECKING:
    from obligations.docstore import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Everything one owner's session needs, wired once and shared."""

    owner_id: str
    service: RecurringObligationService
    runner: SchedulerRunner
    engine: SchedulerEngine


def _init_notifications() -> NotificationRouter:
    """Register the log channel unless the host already registered channels."""
    router = NotificationRouter.get()
    if not router.list_channels():
        router.register_channel(LogChannel())
    if settings.default_notification_channel in router.list_channels():
        router.set_default_channel(settings.default_notification_channel)
    logger.info(
        "Notifications initialized: channels=%s, default=%s",
        router.list_channels(),
        router.default_channel_name,
    )
    return router


def build_session(owner_id: str, docs: DocumentStore | None = None) -> Session:
    """Wire stores, runner, engine and service for *owner_id*."""
    docs = docs or LibsqlDocumentStore.shared()
    templates = TemplateStore(docs, owner_id)
    instances = ObligationStore(docs, owner_id, overflow=settings.monthly_overflow_policy)
    dispatcher = NotificationDispatcher(_init_notifications(), soon_days=settings.due_soon_days)
    runner = SchedulerRunner(
        templates,
        instances,
        OverdueTransitioner(instances),
        dispatcher=dispatcher,
    )
    payments = PaymentService(instances, DocumentPaymentRecorder(docs))
    service = RecurringObligationService(templates, instances, payments, runner)
    return Session(
        owner_id=owner_id,
        service=service,
        runner=runner,
        engine=SchedulerEngine(runner),
    )


async def run_session(session: Session, stop: asyncio.Event | None = None) -> None:
    """Run the session's scheduler until *stop* is set (or forever)."""
    stop = stop or asyncio.Event()
    await session.engine.start()
    try:
        await stop.wait()
    finally:
        await session.engine.stop()


def main() -> None:
    """Run a scheduler session for the configured owner."""
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=getattr(logging, settings.log_level),
    )
    if not settings.owner_id:
        logger.error("OWNER_ID is empty — nothing to schedule")
        raise SystemExit(1)

    logger.info("Starting obligations session for owner %s", settings.owner_id)
    try:
        asyncio.run(run_session(build_session(settings.owner_id)))
    except KeyboardInterrupt:
        logger.info("Session interrupted")


if __name__ == "__main__":
    main()
