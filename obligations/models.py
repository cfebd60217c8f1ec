"""Recurrence templates, obligation instances and their status lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any


class RecurrenceType(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM_CALENDAR = "custom_calendar"


class InstanceStatus(StrEnum):
    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"


class Category(StrEnum):
    HOME = "home"
    TRANSPORT = "transport"
    FOOD = "food"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    OTHER = "other"


ACTIVE_STATUSES = (InstanceStatus.PENDING, InstanceStatus.OVERDUE)

_TRANSITIONS: dict[InstanceStatus, frozenset[InstanceStatus]] = {
    InstanceStatus.PENDING: frozenset({InstanceStatus.OVERDUE, InstanceStatus.PAID}),
    InstanceStatus.OVERDUE: frozenset({InstanceStatus.PAID}),
    InstanceStatus.PAID: frozenset(),
}


class InvalidTransitionError(ValueError):
    """A status change outside pending→overdue, pending→paid, overdue→paid."""


def can_transition(current: InstanceStatus, target: InstanceStatus) -> bool:
    return target in _TRANSITIONS[current]


def check_transition(current: InstanceStatus, target: InstanceStatus) -> None:
    if not can_transition(current, target):
        msg = f"Cannot move an instance from {current} to {target}"
        raise InvalidTransitionError(msg)


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _amount_to_doc(amount: Decimal | None) -> str | None:
    return None if amount is None else str(amount)


def _amount_from_doc(raw: Any) -> Decimal | None:
    return None if raw is None else Decimal(str(raw))


@dataclass
class TemplateDraft:
    """Fields a caller supplies to create a recurrence template."""

    name: str
    category: Category
    recurrence_type: RecurrenceType
    amount: Decimal | None = None
    week_day: int | None = None
    month_day: int | None = None
    custom_days: tuple[int, ...] = ()
    is_active: bool = True


@dataclass
class RecurrenceTemplate:
    """A recurring obligation definition.

    Attributes:
        id: Store-assigned document ID.
        owner_id: Owner the template belongs to.
        name: Display name, copied onto generated instances.
        category: Expense category.
        recurrence_type: ``daily``, ``weekly``, ``monthly`` or ``custom_calendar``.
        amount: Required (> 0) unless daily.
        week_day: 0 = Sunday ... 6 = Saturday; weekly only.
        month_day: 1–31; monthly only.
        custom_days: Days of the month (1–31); custom_calendar only.
        is_active: Inactive templates are skipped by the scheduler.
        created_at: ISO 8601 timestamp.
        updated_at: ISO 8601 timestamp.
    """

    id: str
    owner_id: str
    name: str
    category: Category
    recurrence_type: RecurrenceType
    amount: Decimal | None = None
    week_day: int | None = None
    month_day: int | None = None
    custom_days: tuple[int, ...] = ()
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self) -> None:
        self.custom_days = tuple(sorted(set(self.custom_days)))
        if not self.created_at:
            self.created_at = utc_now_iso()
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def is_daily(self) -> bool:
        return self.recurrence_type == RecurrenceType.DAILY

    @classmethod
    def from_draft(cls, draft: TemplateDraft, *, doc_id: str, owner_id: str) -> RecurrenceTemplate:
        return cls(
            id=doc_id,
            owner_id=owner_id,
            name=draft.name.strip(),
            category=Category(draft.category),
            recurrence_type=RecurrenceType(draft.recurrence_type),
            amount=None if draft.amount is None else Decimal(str(draft.amount)),
            week_day=draft.week_day,
            month_day=draft.month_day,
            custom_days=tuple(draft.custom_days),
            is_active=draft.is_active,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "name": self.name,
            "category": str(self.category),
            "recurrence_type": str(self.recurrence_type),
            "amount": _amount_to_doc(self.amount),
            "week_day": self.week_day,
            "month_day": self.month_day,
            "custom_days": list(self.custom_days),
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> RecurrenceTemplate:
        return cls(
            id=doc["id"],
            owner_id=doc["owner_id"],
            name=doc["name"],
            category=Category(doc["category"]),
            recurrence_type=RecurrenceType(doc["recurrence_type"]),
            amount=_amount_from_doc(doc.get("amount")),
            week_day=doc.get("week_day"),
            month_day=doc.get("month_day"),
            custom_days=tuple(doc.get("custom_days") or ()),
            is_active=bool(doc.get("is_active", True)),
            created_at=doc.get("created_at", ""),
            updated_at=doc.get("updated_at", ""),
        )


@dataclass(frozen=True)
class CandidateInstance:
    """An occurrence the generator proposes; not yet persisted."""

    template_id: str
    item_name: str
    amount: Decimal
    category: Category
    recurrence_type: RecurrenceType
    due_date: date
    period_start: date
    period_end: date


@dataclass
class ObligationInstance:
    """One dated occurrence of a template.

    ``template_id`` is a lookup-only back-reference and ``item_name`` is a
    snapshot taken at generation time.
    """

    id: str
    owner_id: str
    template_id: str
    item_name: str
    amount: Decimal
    category: Category
    recurrence_type: RecurrenceType
    due_date: date
    period_start: date
    period_end: date
    status: InstanceStatus = InstanceStatus.PENDING
    created_at: str = ""
    paid_at: str | None = None
    payment_id: str | None = None

    def __post_init__(self) -> None:
        if not self.created_at:
            self.created_at = utc_now_iso()

    @property
    def is_open(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_candidate(
        cls, candidate: CandidateInstance, *, doc_id: str, owner_id: str, created_at: str = ""
    ) -> ObligationInstance:
        return cls(
            id=doc_id,
            owner_id=owner_id,
            template_id=candidate.template_id,
            item_name=candidate.item_name,
            amount=candidate.amount,
            category=candidate.category,
            recurrence_type=candidate.recurrence_type,
            due_date=candidate.due_date,
            period_start=candidate.period_start,
            period_end=candidate.period_end,
            created_at=created_at,
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "template_id": self.template_id,
            "item_name": self.item_name,
            "amount": _amount_to_doc(self.amount),
            "category": str(self.category),
            "recurrence_type": str(self.recurrence_type),
            "due_date": self.due_date.isoformat(),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "status": str(self.status),
            "created_at": self.created_at,
            "paid_at": self.paid_at,
            "payment_id": self.payment_id,
        }

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> ObligationInstance:
        return cls(
            id=doc["id"],
            owner_id=doc["owner_id"],
            template_id=doc["template_id"],
            item_name=doc["item_name"],
            amount=_amount_from_doc(doc.get("amount")) or Decimal(0),
            category=Category(doc["category"]),
            recurrence_type=RecurrenceType(doc["recurrence_type"]),
            due_date=date.fromisoformat(doc["due_date"]),
            period_start=date.fromisoformat(doc["period_start"]),
            period_end=date.fromisoformat(doc["period_end"]),
            status=InstanceStatus(doc["status"]),
            created_at=doc.get("created_at", ""),
            paid_at=doc.get("paid_at"),
            payment_id=doc.get("payment_id"),
        )
