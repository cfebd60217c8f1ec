"""Tests for OverdueTransitioner — the pending → overdue sweep."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

from obligations.instances import ObligationStore
from obligations.models import CandidateInstance, Category, InstanceStatus, RecurrenceType
from obligations.overdue import OverdueTransitioner


def _candidate(due: date, template_id: str = "tpl1") -> CandidateInstance:
    return CandidateInstance(
        template_id=template_id,
        item_name="Water",
        amount=Decimal("50"),
        category=Category.UTILITIES,
        recurrence_type=RecurrenceType.WEEKLY,
        due_date=due,
        period_start=due - timedelta(days=due.weekday()),
        period_end=due - timedelta(days=due.weekday()) + timedelta(days=6),
    )


async def test_sweep_marks_past_due_overdue(instances: ObligationStore) -> None:
    created = await instances.insert_if_absent(_candidate(date(2024, 1, 5)))

    changed = await OverdueTransitioner(instances).sweep(datetime(2024, 1, 6, 10))

    assert [i.id for i in changed] == [created.id]
    fetched = await instances.get(created.id)
    assert fetched is not None
    assert fetched.status == InstanceStatus.OVERDUE


async def test_sweep_leaves_due_today_pending(instances: ObligationStore) -> None:
    created = await instances.insert_if_absent(_candidate(date(2024, 1, 6)))

    changed = await OverdueTransitioner(instances).sweep(datetime(2024, 1, 6, 23, 59))

    assert changed == []
    fetched = await instances.get(created.id)
    assert fetched is not None
    assert fetched.status == InstanceStatus.PENDING


async def test_sweep_never_touches_paid(instances: ObligationStore) -> None:
    created = await instances.insert_if_absent(_candidate(date(2024, 1, 1)))
    await instances.set_status(created, InstanceStatus.PAID, payment_id="pay1")

    await OverdueTransitioner(instances).sweep(datetime(2024, 2, 1))

    fetched = await instances.get(created.id)
    assert fetched is not None
    assert fetched.status == InstanceStatus.PAID
    assert fetched.payment_id == "pay1"


async def test_sweep_is_idempotent(instances: ObligationStore) -> None:
    await instances.insert_if_absent(_candidate(date(2024, 1, 5)))
    sweeper = OverdueTransitioner(instances)

    first = await sweeper.sweep(datetime(2024, 1, 6, 10))
    second = await sweeper.sweep(datetime(2024, 1, 7, 10))

    assert len(first) == 1
    assert second == []
    active = await instances.list_active()
    assert [i.status for i in active] == [InstanceStatus.OVERDUE]


async def test_sweep_continues_after_failed_update(instances: ObligationStore) -> None:
    a = await instances.insert_if_absent(_candidate(date(2024, 1, 2), "tpl1"))
    b = await instances.insert_if_absent(_candidate(date(2024, 1, 3), "tpl2"))

    real_set_status = instances.set_status
    calls = []

    async def flaky(instance, status, **kwargs):
        calls.append(instance.id)
        if instance.id == a.id:
            raise RuntimeError("store unavailable")
        return await real_set_status(instance, status, **kwargs)

    instances.set_status = flaky
    changed = await OverdueTransitioner(instances).sweep(datetime(2024, 1, 10))

    assert calls == [a.id, b.id]
    assert [i.id for i in changed] == [b.id]


async def test_sweep_only_loads_pending() -> None:
    store = AsyncMock()
    store.list_by_status.return_value = []

    await OverdueTransitioner(store).sweep(datetime(2024, 1, 10))

    store.list_by_status.assert_awaited_once_with([InstanceStatus.PENDING])
