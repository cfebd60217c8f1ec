"""NotificationEvaluator — buckets open instances by urgency.

Each instance lands in at most one bucket, checked in this order:

1. overdue — status is ``overdue`` or the due day is before today
2. due today — due on the same calendar day as *now*
3. due soon — due within ``(today, today + soon_days]``

Anything later is counted only in ``total_pending``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from obligations.dates import end_of_day, start_of_day
from obligations.models import InstanceStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from obligations.models import ObligationInstance

DUE_SOON_DAYS = 3


class PushKind(StrEnum):
    OVERDUE = "overdue"
    DUE_TODAY = "due-today"


@dataclass
class Buckets:
    overdue: list[ObligationInstance] = field(default_factory=list)
    due_today: list[ObligationInstance] = field(default_factory=list)
    due_soon: list[ObligationInstance] = field(default_factory=list)
    later: list[ObligationInstance] = field(default_factory=list)


@dataclass(frozen=True)
class NotificationStats:
    overdue_count: int = 0
    due_today_count: int = 0
    due_soon_count: int = 0
    total_pending: int = 0


def partition(
    instances: Sequence[ObligationInstance], now: datetime, *, soon_days: int = DUE_SOON_DAYS
) -> Buckets:
    """Split *instances* into urgency buckets as of *now*."""
    today_start = start_of_day(now)
    today = now.date()
    soon_end = today + timedelta(days=soon_days)
    buckets = Buckets()
    for instance in instances:
        due = instance.due_date
        if instance.status == InstanceStatus.OVERDUE or end_of_day(due, now.tzinfo) < today_start:
            buckets.overdue.append(instance)
        elif due == today:
            buckets.due_today.append(instance)
        elif today < due <= soon_end:
            buckets.due_soon.append(instance)
        else:
            buckets.later.append(instance)
    return buckets


def classify(
    instances: Sequence[ObligationInstance], now: datetime, *, soon_days: int = DUE_SOON_DAYS
) -> NotificationStats:
    """Count *instances* per bucket.

    The caller is expected to pass only pending and overdue instances.
    """
    buckets = partition(instances, now, soon_days=soon_days)
    return NotificationStats(
        overdue_count=len(buckets.overdue),
        due_today_count=len(buckets.due_today),
        due_soon_count=len(buckets.due_soon),
        total_pending=len(instances),
    )


def choose_push(stats: NotificationStats) -> PushKind | None:
    """Overdue wins and suppresses due-today; due-soon is never pushed."""
    if stats.overdue_count > 0:
        return PushKind.OVERDUE
    if stats.due_today_count > 0:
        return PushKind.DUE_TODAY
    return None


# -- Dashboard helpers ---------------------------------------------------------


def important_count(stats: NotificationStats) -> int:
    return stats.overdue_count + stats.due_today_count


def badge_variant(stats: NotificationStats) -> str:
    if stats.overdue_count > 0:
        return "destructive"
    if stats.due_today_count > 0:
        return "default"
    return "secondary"


def _plural(count: int, one: str, many: str) -> str:
    return one if count == 1 else many.format(count=count)


def summary_message(stats: NotificationStats) -> str | None:
    """One-line banner text for the most urgent non-empty bucket."""
    if stats.overdue_count > 0:
        return _plural(
            stats.overdue_count,
            "You have 1 overdue payment",
            "You have {count} overdue payments",
        )
    if stats.due_today_count > 0:
        return _plural(
            stats.due_today_count,
            "You have 1 payment due today",
            "You have {count} payments due today",
        )
    if stats.due_soon_count > 0:
        return _plural(
            stats.due_soon_count,
            "You have 1 payment coming up",
            "You have {count} payments coming up",
        )
    return None
