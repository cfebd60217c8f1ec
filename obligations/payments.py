"""Paying obligations: the payment collaborator and the two ways to pay.

A daily template is paid directly; every other obligation is paid through
one of its generated instances.  ``PayableSource`` makes the caller say
which of the two it holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Protocol, assert_never, runtime_checkable

from obligations.config import settings
from obligations.instances import InstanceNotFoundError
from obligations.models import InstanceStatus, check_transition, utc_now_iso

if TYPE_CHECKING:
    from obligations.docstore import DocumentStore
    from obligations.instances import ObligationStore
    from obligations.models import ObligationInstance, RecurrenceTemplate

logger = logging.getLogger(__name__)

COLLECTION = "payments"


@dataclass(frozen=True)
class PaymentRequest:
    """What gets recorded for one payment."""

    owner_id: str
    source_id: str
    name: str
    amount: Decimal
    paid_at: str
    receipt_ref: str | None = None
    notes: str | None = None


@runtime_checkable
class PaymentRecorder(Protocol):
    """Records a payment somewhere and returns its opaque ID."""

    async def record(self, request: PaymentRequest) -> str: ...


class DocumentPaymentRecorder:
    """Writes payments to the ``payments`` collection of a document store."""

    def __init__(self, docs: DocumentStore, currency: str | None = None) -> None:
        self._docs = docs
        self._currency = currency or settings.payment_currency

    async def record(self, request: PaymentRequest) -> str:
        doc = {
            "owner_id": request.owner_id,
            "source_id": request.source_id,
            "name": request.name,
            "amount": str(request.amount),
            "currency": self._currency,
            "paid_at": request.paid_at,
            "created_at": utc_now_iso(),
        }
        if request.receipt_ref:
            doc["receipt_ref"] = request.receipt_ref
        if request.notes:
            doc["notes"] = request.notes
        payment_id = await self._docs.insert(COLLECTION, doc)
        logger.info("Recorded payment %s for '%s' (%s)", payment_id, request.name, request.amount)
        return payment_id


@dataclass(frozen=True)
class TemplatePayable:
    """A daily template, paid without an instance."""

    template: RecurrenceTemplate


@dataclass(frozen=True)
class InstancePayable:
    """A generated instance, paid by marking it paid."""

    instance: ObligationInstance


PayableSource = TemplatePayable | InstancePayable


class PaymentService:
    """Pays daily templates and obligation instances for one owner."""

    def __init__(self, instances: ObligationStore, recorder: PaymentRecorder) -> None:
        self._instances = instances
        self._recorder = recorder

    async def mark_as_paid(
        self,
        instance_id: str,
        *,
        receipt_ref: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Record a payment for an instance and move it to ``paid``.

        Returns the payment ID now linked from the instance.
        """
        instance = await self._instances.get(instance_id)
        if instance is None:
            msg = f"Instance not found: {instance_id}"
            raise InstanceNotFoundError(msg)
        check_transition(instance.status, InstanceStatus.PAID)

        paid_at = utc_now_iso()
        payment_id = await self._recorder.record(
            PaymentRequest(
                owner_id=self._instances.owner_id,
                source_id=instance.template_id,
                name=instance.item_name,
                amount=instance.amount,
                paid_at=paid_at,
                receipt_ref=receipt_ref,
                notes=notes,
            )
        )
        await self._instances.set_status(
            instance, InstanceStatus.PAID, paid_at=paid_at, payment_id=payment_id
        )
        logger.info("Instance marked as paid: '%s' (%s)", instance.item_name, instance_id)
        return payment_id

    async def pay_daily_item(
        self,
        template: RecurrenceTemplate,
        *,
        amount: Decimal | None = None,
        receipt_ref: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Record a direct payment for a daily template.

        *amount* defaults to the template's amount; one of them must be set.
        """
        if not template.is_daily:
            msg = f"Only daily items are paid directly, '{template.name}' is {template.recurrence_type}"
            raise ValueError(msg)
        value = amount if amount is not None else template.amount
        if value is None or value <= 0:
            msg = f"An amount greater than zero is required to pay '{template.name}'"
            raise ValueError(msg)

        payment_id = await self._recorder.record(
            PaymentRequest(
                owner_id=self._instances.owner_id,
                source_id=template.id,
                name=template.name,
                amount=Decimal(str(value)),
                paid_at=utc_now_iso(),
                receipt_ref=receipt_ref,
                notes=notes,
            )
        )
        logger.info("Daily item paid: '%s' (%s)", template.name, template.id)
        return payment_id

    async def pay(
        self,
        source: PayableSource,
        *,
        amount: Decimal | None = None,
        receipt_ref: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Pay whatever *source* holds. Returns the payment ID."""
        if isinstance(source, TemplatePayable):
            return await self.pay_daily_item(
                source.template, amount=amount, receipt_ref=receipt_ref, notes=notes
            )
        if isinstance(source, InstancePayable):
            return await self.mark_as_paid(
                source.instance.id, receipt_ref=receipt_ref, notes=notes
            )
        assert_never(source)
