"""InstanceGenerator — expands a recurrence template into dated candidates.

``generate`` is pure: it never touches a store.  Callers run the dedup
protocol (see ``ObligationStore.insert_if_absent``) before inserting.

Horizons:

- weekly: the ISO week (Mon–Sun) containing *now* plus the next three.
- monthly: the current month plus the next two.
- custom_calendar: the current month only.  Each configured day is its own
  one-day period; with month bounds the (template, period_start) dedup key
  would collapse every day of the month into one instance.
- daily: nothing; daily items are paid directly.

Any candidate whose due date falls before the start of *now*'s day is dropped.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from obligations.dates import days_in_month, month_bounds, shift_month, week_bounds
from obligations.models import CandidateInstance, RecurrenceType

if TYPE_CHECKING:
    from datetime import date, datetime

    from obligations.models import RecurrenceTemplate

logger = logging.getLogger(__name__)

WEEKLY_HORIZON_WEEKS = 4
MONTHLY_HORIZON_MONTHS = 3

OVERFLOW_CLAMP = "clamp"
OVERFLOW_SKIP = "skip"


def _candidate(
    template: RecurrenceTemplate, due: date, period_start: date, period_end: date
) -> CandidateInstance:
    return CandidateInstance(
        template_id=template.id,
        item_name=template.name,
        amount=template.amount if template.amount is not None else Decimal(0),
        category=template.category,
        recurrence_type=template.recurrence_type,
        due_date=due,
        period_start=period_start,
        period_end=period_end,
    )


def _weekly(template: RecurrenceTemplate, today: date) -> list[CandidateInstance]:
    week_day = template.week_day if template.week_day is not None else 1
    # week_day counts from Sunday, weeks start on Monday
    offset = 6 if week_day == 0 else week_day - 1
    first_monday, _ = week_bounds(today)
    out = []
    for week in range(WEEKLY_HORIZON_WEEKS):
        week_start = first_monday + timedelta(weeks=week)
        due = week_start + timedelta(days=offset)
        if due < today:
            continue
        out.append(_candidate(template, due, week_start, week_start + timedelta(days=6)))
    return out


def _monthly(
    template: RecurrenceTemplate, today: date, overflow: str
) -> list[CandidateInstance]:
    month_day = template.month_day or 1
    out = []
    for offset in range(MONTHLY_HORIZON_MONTHS):
        year, month = shift_month(today.year, today.month, offset)
        month_start, month_end = month_bounds(year, month)
        if month_day > month_end.day:
            if overflow == OVERFLOW_SKIP:
                logger.debug(
                    "Skipping %04d-%02d for '%s': day %d does not exist",
                    year, month, template.name, month_day,
                )
                continue
            due = month_end
        else:
            due = month_start.replace(day=month_day)
        if due < today:
            continue
        out.append(_candidate(template, due, month_start, month_end))
    return out


def _custom_calendar(template: RecurrenceTemplate, today: date) -> list[CandidateInstance]:
    last_day = days_in_month(today.year, today.month)
    out = []
    for day in sorted(set(template.custom_days)):
        if day > last_day:
            continue
        due = today.replace(day=day)
        if due < today:
            continue
        out.append(_candidate(template, due, due, due))
    return out


def generate(
    template: RecurrenceTemplate, now: datetime, *, overflow: str = OVERFLOW_CLAMP
) -> list[CandidateInstance]:
    """Return the candidate instances *template* calls for as of *now*.

    *overflow* decides what a monthly ``month_day`` past the end of a month
    does: ``"clamp"`` moves it to the last day, ``"skip"`` drops that month.
    """
    if overflow not in (OVERFLOW_CLAMP, OVERFLOW_SKIP):
        msg = f"Unknown monthly overflow policy: {overflow}"
        raise ValueError(msg)

    today = now.date()
    kind = template.recurrence_type
    if kind == RecurrenceType.WEEKLY:
        return _weekly(template, today)
    if kind == RecurrenceType.MONTHLY:
        return _monthly(template, today, overflow)
    if kind == RecurrenceType.CUSTOM_CALENDAR:
        return _custom_calendar(template, today)
    return []
