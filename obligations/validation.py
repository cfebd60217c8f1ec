"""Template validation, applied before any template is persisted."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from obligations.models import Category, RecurrenceType

if TYPE_CHECKING:
    from obligations.models import RecurrenceTemplate, TemplateDraft

MAX_NAME_LENGTH = 100


class TemplateValidationError(ValueError):
    """A template is missing or misusing a field for its recurrence type."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__(", ".join(errors))


def _positive(amount: object) -> bool:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return False
    return value.is_finite() and value > 0


def _int_between(value: object, low: int, high: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and low <= value <= high


def validate_template(template: TemplateDraft | RecurrenceTemplate) -> None:
    """Raise TemplateValidationError listing every rule *template* breaks."""
    errors: list[str] = []

    name = (template.name or "").strip()
    if not name:
        errors.append("name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"name cannot exceed {MAX_NAME_LENGTH} characters")

    if template.category not in set(Category):
        errors.append(f"invalid category: {template.category}")

    if template.recurrence_type not in set(RecurrenceType):
        errors.append(f"invalid recurrence type: {template.recurrence_type}")
        raise TemplateValidationError(errors)

    kind = RecurrenceType(template.recurrence_type)
    if kind != RecurrenceType.DAILY:
        if template.amount is None or not _positive(template.amount):
            errors.append(f"{kind} items must have an amount greater than zero")
    elif template.amount is not None and not _positive(template.amount):
        errors.append("amount must be greater than zero when set")

    if kind == RecurrenceType.WEEKLY:
        if not _int_between(template.week_day, 0, 6):
            errors.append("weekly items must have a week day between 0 and 6")
    elif kind == RecurrenceType.MONTHLY:
        if not _int_between(template.month_day, 1, 31):
            errors.append("monthly items must have a month day between 1 and 31")
    elif kind == RecurrenceType.CUSTOM_CALENDAR:
        if not template.custom_days:
            errors.append("custom calendar items must have at least one day")
        elif any(not _int_between(day, 1, 31) for day in template.custom_days):
            errors.append("custom calendar days must be between 1 and 31")

    if errors:
        raise TemplateValidationError(errors)
