"""Tests for due-date classification and the push policy."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from obligations.models import Category, InstanceStatus, ObligationInstance, RecurrenceType
from obligations.notifications.evaluator import (
    NotificationStats,
    PushKind,
    badge_variant,
    choose_push,
    classify,
    important_count,
    partition,
    summary_message,
)

NOW = datetime(2024, 1, 10, 15, 30)
TODAY = NOW.date()


def _instance(
    due: date, status: InstanceStatus = InstanceStatus.PENDING, name: str = "Item"
) -> ObligationInstance:
    return ObligationInstance(
        id=f"{name}-{due.isoformat()}",
        owner_id="owner-1",
        template_id="tpl1",
        item_name=name,
        amount=Decimal("10"),
        category=Category.OTHER,
        recurrence_type=RecurrenceType.WEEKLY,
        due_date=due,
        period_start=due,
        period_end=due,
        status=status,
    )


# -- classify ------------------------------------------------------------------


def test_buckets() -> None:
    instances = [
        _instance(TODAY - timedelta(days=2)),  # past due, still pending
        _instance(TODAY, InstanceStatus.OVERDUE),  # flagged overdue
        _instance(TODAY),
        _instance(TODAY + timedelta(days=1)),
        _instance(TODAY + timedelta(days=3)),
        _instance(TODAY + timedelta(days=4)),  # later
    ]
    stats = classify(instances, NOW)
    assert stats == NotificationStats(
        overdue_count=2, due_today_count=1, due_soon_count=2, total_pending=6
    )


def test_yesterday_is_overdue_even_when_pending() -> None:
    stats = classify([_instance(TODAY - timedelta(days=1))], NOW)
    assert stats.overdue_count == 1


def test_soon_window_width() -> None:
    instances = [_instance(TODAY + timedelta(days=5))]
    assert classify(instances, NOW).due_soon_count == 0
    assert classify(instances, NOW, soon_days=5).due_soon_count == 1


def test_empty() -> None:
    assert classify([], NOW) == NotificationStats()


@pytest.mark.parametrize("offset", range(-3, 7))
@pytest.mark.parametrize("status", [InstanceStatus.PENDING, InstanceStatus.OVERDUE])
def test_each_instance_in_at_most_one_bucket(offset: int, status: InstanceStatus) -> None:
    stats = classify([_instance(TODAY + timedelta(days=offset), status)], NOW)
    assert stats.overdue_count + stats.due_today_count + stats.due_soon_count <= 1
    assert stats.total_pending == 1


def test_partition_keeps_later_items() -> None:
    later = _instance(TODAY + timedelta(days=10))
    buckets = partition([later], NOW)
    assert buckets.later == [later]


# -- Push policy ---------------------------------------------------------------


def test_overdue_suppresses_due_today() -> None:
    instances = [
        _instance(TODAY - timedelta(days=3), InstanceStatus.OVERDUE),
        _instance(TODAY),
    ]
    stats = classify(instances, NOW)
    assert stats.overdue_count == 1
    assert stats.due_today_count == 1
    assert choose_push(stats) == PushKind.OVERDUE


def test_due_today_push() -> None:
    assert choose_push(NotificationStats(due_today_count=2, total_pending=2)) == PushKind.DUE_TODAY


def test_due_soon_never_pushed() -> None:
    assert choose_push(NotificationStats(due_soon_count=3, total_pending=3)) is None


# -- Dashboard helpers ---------------------------------------------------------


def test_summary_message_priority() -> None:
    assert summary_message(NotificationStats(overdue_count=1, due_today_count=2)) == (
        "You have 1 overdue payment"
    )
    assert summary_message(NotificationStats(due_today_count=2)) == (
        "You have 2 payments due today"
    )
    assert summary_message(NotificationStats(due_soon_count=1)) == "You have 1 payment coming up"
    assert summary_message(NotificationStats()) is None


def test_badge_variant_and_important_count() -> None:
    stats = NotificationStats(overdue_count=1, due_today_count=2, due_soon_count=5)
    assert badge_variant(stats) == "destructive"
    assert badge_variant(NotificationStats(due_today_count=1)) == "default"
    assert badge_variant(NotificationStats(due_soon_count=1)) == "secondary"
    assert important_count(stats) == 3
