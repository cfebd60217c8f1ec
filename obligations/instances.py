"""ObligationStore — persistence for generated instances of one owner."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from obligations.generator import OVERFLOW_CLAMP, generate
from obligations.models import (
    ACTIVE_STATUSES,
    InstanceStatus,
    ObligationInstance,
    check_transition,
    utc_now_iso,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import date, datetime

    from obligations.docstore import DocumentStore
    from obligations.models import CandidateInstance, RecurrenceTemplate

logger = logging.getLogger(__name__)

COLLECTION = "obligation_instances"


class InstanceNotFoundError(LookupError):
    """No instance with the given ID exists for this owner."""


class ObligationStore:
    """Stores obligation instances, keyed for dedup by ``(template_id, period_start)``.

    The existence check and the insert in ``insert_if_absent`` are two
    separate store calls; a writer outside this process can still slip a
    duplicate in between.
    """

    def __init__(
        self, docs: DocumentStore, owner_id: str, *, overflow: str = OVERFLOW_CLAMP
    ) -> None:
        self._docs = docs
        self._owner_id = owner_id
        self._overflow = overflow

    @property
    def owner_id(self) -> str:
        return self._owner_id

    # -- Reads -----------------------------------------------------------------

    async def get(self, instance_id: str) -> ObligationInstance | None:
        doc = await self._docs.get(COLLECTION, instance_id)
        if doc is None or doc.get("owner_id") != self._owner_id:
            return None
        return ObligationInstance.from_doc(doc)

    async def find_by_period(
        self, template_id: str, period_start: date
    ) -> ObligationInstance | None:
        """The instance occupying a dedup slot, if any."""
        docs = await self._docs.query_eq(
            COLLECTION,
            {
                "owner_id": self._owner_id,
                "template_id": template_id,
                "period_start": period_start.isoformat(),
            },
        )
        return ObligationInstance.from_doc(docs[0]) if docs else None

    async def has_pending(self, template_id: str) -> bool:
        docs = await self._docs.query_eq(
            COLLECTION,
            {
                "owner_id": self._owner_id,
                "template_id": template_id,
                "status": str(InstanceStatus.PENDING),
            },
        )
        return bool(docs)

    async def list_by_status(
        self, statuses: Iterable[InstanceStatus]
    ) -> list[ObligationInstance]:
        """Instances in any of *statuses*, earliest due date first."""
        docs = await self._docs.query_in(
            COLLECTION,
            "status",
            [str(s) for s in statuses],
            filters={"owner_id": self._owner_id},
            order_by="due_date",
        )
        return [ObligationInstance.from_doc(doc) for doc in docs]

    async def list_active(self) -> list[ObligationInstance]:
        """Pending and overdue instances, earliest due date first."""
        return await self.list_by_status(ACTIVE_STATUSES)

    async def list_for_template(self, template_id: str) -> list[ObligationInstance]:
        docs = await self._docs.query_eq(
            COLLECTION,
            {"owner_id": self._owner_id, "template_id": template_id},
            order_by="due_date",
        )
        return [ObligationInstance.from_doc(doc) for doc in docs]

    # -- Writes ----------------------------------------------------------------

    async def insert_if_absent(
        self, candidate: CandidateInstance, now: datetime | None = None
    ) -> ObligationInstance | None:
        """Insert *candidate* unless its period already has an instance.

        Returns the new instance, or None when the slot was taken.
        """
        existing = await self.find_by_period(candidate.template_id, candidate.period_start)
        if existing is not None:
            return None
        created_at = now.isoformat() if now is not None else utc_now_iso()
        instance = ObligationInstance.from_candidate(
            candidate, doc_id="", owner_id=self._owner_id, created_at=created_at
        )
        instance.id = await self._docs.insert(COLLECTION, instance.to_doc())
        return instance

    async def generate_for_template(
        self, template: RecurrenceTemplate, now: datetime
    ) -> list[ObligationInstance]:
        """Run the generator for *template* and insert every free period."""
        created = []
        for candidate in generate(template, now, overflow=self._overflow):
            instance = await self.insert_if_absent(candidate, now)
            if instance is not None:
                created.append(instance)
        logger.info(
            "%d instance(s) generated for template '%s' (%s)",
            len(created),
            template.name,
            template.id,
        )
        return created

    async def set_status(
        self,
        instance: ObligationInstance,
        status: InstanceStatus,
        *,
        paid_at: str | None = None,
        payment_id: str | None = None,
    ) -> ObligationInstance:
        """Move *instance* to *status*, enforcing the lifecycle."""
        check_transition(instance.status, status)
        changes: dict[str, str | None] = {"status": str(status)}
        if status == InstanceStatus.PAID:
            changes["paid_at"] = paid_at or utc_now_iso()
            changes["payment_id"] = payment_id
        if not await self._docs.update(COLLECTION, instance.id, changes):
            msg = f"Instance not found: {instance.id}"
            raise InstanceNotFoundError(msg)
        instance.status = status
        if status == InstanceStatus.PAID:
            instance.paid_at = changes["paid_at"]
            instance.payment_id = payment_id
        return instance

    async def delete(self, instance_id: str) -> bool:
        """Delete one of the owner's instances. Returns False if not found."""
        if await self.get(instance_id) is None:
            return False
        return await self._docs.delete(COLLECTION, instance_id)
