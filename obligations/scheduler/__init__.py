"""Recurring obligation scheduler — guarded cycles and their triggers."""

from obligations.scheduler.engine import SchedulerEngine
from obligations.scheduler.runner import CycleReport, SchedulerRunner

__all__ = [
    "CycleReport",
    "SchedulerEngine",
    "SchedulerRunner",
]
