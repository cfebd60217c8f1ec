"""RecurringObligationService — the owner-facing operations.

Template edits go through here so that each one fires the manual scheduler
trigger afterwards.  That trigger is subject to the runner's guard and is
often refused; creating a template therefore also generates that template's
own instances directly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from zoneinfo import ZoneInfo

from obligations.config import settings
from obligations.models import InstanceStatus, RecurrenceType

if TYPE_CHECKING:
    from collections.abc import Callable
    from decimal import Decimal

    from obligations.instances import ObligationStore
    from obligations.models import ObligationInstance, RecurrenceTemplate, TemplateDraft
    from obligations.payments import PayableSource, PaymentService
    from obligations.scheduler.runner import SchedulerRunner
    from obligations.templates import TemplateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ObligationStats:
    total_active: int = 0
    daily_count: int = 0
    weekly_count: int = 0
    monthly_count: int = 0
    calendar_count: int = 0
    pending_instances: int = 0
    overdue_instances: int = 0


class RecurringObligationService:
    """Template management, payments and statistics for one owner.

    Args:
        templates: TemplateStore for the owner.
        instances: ObligationStore for the owner.
        payments: PaymentService for the owner.
        runner: SchedulerRunner to trigger after template edits (optional).
        now: Returns the current time (default: now in the scheduler timezone).
    """

    def __init__(
        self,
        templates: TemplateStore,
        instances: ObligationStore,
        payments: PaymentService,
        runner: SchedulerRunner | None = None,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._templates = templates
        self._instances = instances
        self._payments = payments
        self._runner = runner
        self._now = now or (lambda: datetime.now(ZoneInfo(settings.scheduler_timezone)))

    async def _trigger(self) -> None:
        if self._runner is not None:
            await self._runner.run()

    # -- Templates -------------------------------------------------------------

    async def create_template(self, draft: TemplateDraft) -> RecurrenceTemplate:
        """Create a template and generate its first instances.

        Raises TemplateValidationError without persisting anything.
        """
        try:
            template = await self._templates.create(draft)
            if not template.is_daily:
                await self._instances.generate_for_template(template, self._now())
        except Exception:
            logger.exception("Failed to create template '%s'", draft.name)
            raise
        await self._trigger()
        return template

    async def update_template(self, template_id: str, **changes: Any) -> RecurrenceTemplate:
        try:
            template = await self._templates.update(template_id, **changes)
        except Exception:
            logger.exception("Failed to update template %s", template_id)
            raise
        await self._trigger()
        return template

    async def delete_template(self, template_id: str) -> bool:
        """Delete a template and, best-effort, its unpaid instances.

        An instance that fails to delete is logged and left behind; the
        template is deleted regardless and nothing is rolled back.
        """
        instances = await self._instances.list_for_template(template_id)
        for instance in instances:
            if instance.status == InstanceStatus.PAID:
                continue
            try:
                await self._instances.delete(instance.id)
            except Exception:
                logger.exception(
                    "Failed to delete instance %s of template %s; leaving it orphaned",
                    instance.id,
                    template_id,
                )
        try:
            deleted = await self._templates.delete(template_id)
        except Exception:
            logger.exception("Failed to delete template %s", template_id)
            raise
        await self._trigger()
        return deleted

    async def list_templates(self) -> list[RecurrenceTemplate]:
        return await self._templates.list_all()

    async def list_daily_templates(self) -> list[RecurrenceTemplate]:
        return await self._templates.list_daily()

    # -- Instances -------------------------------------------------------------

    async def get_active_instances(self, *, refresh: bool = False) -> list[ObligationInstance]:
        """Pending and overdue instances, optionally after asking for a cycle."""
        if refresh:
            await self._trigger()
        return await self._instances.list_active()

    async def pay(
        self,
        source: PayableSource,
        *,
        amount: Decimal | None = None,
        receipt_ref: str | None = None,
        notes: str | None = None,
    ) -> str:
        try:
            return await self._payments.pay(
                source, amount=amount, receipt_ref=receipt_ref, notes=notes
            )
        except Exception:
            logger.exception("Payment failed for %s", source)
            raise

    # -- Statistics ------------------------------------------------------------

    async def get_stats(self) -> ObligationStats:
        templates = [t for t in await self._templates.list_all() if t.is_active]
        instances = await self._instances.list_active()

        def count(kind: RecurrenceType) -> int:
            return sum(1 for t in templates if t.recurrence_type == kind)

        return ObligationStats(
            total_active=len(templates),
            daily_count=count(RecurrenceType.DAILY),
            weekly_count=count(RecurrenceType.WEEKLY),
            monthly_count=count(RecurrenceType.MONTHLY),
            calendar_count=count(RecurrenceType.CUSTOM_CALENDAR),
            pending_instances=sum(1 for i in instances if i.status == InstanceStatus.PENDING),
            overdue_instances=sum(1 for i in instances if i.status == InstanceStatus.OVERDUE),
        )
