"""Due-date classification and push-notification delivery."""

from obligations.notifications.channels import LogChannel, PushChannel
from obligations.notifications.dispatcher import NotificationDispatcher
from obligations.notifications.evaluator import NotificationStats, PushKind, classify
from obligations.notifications.router import NotificationRouter

__all__ = [
    "LogChannel",
    "NotificationDispatcher",
    "NotificationRouter",
    "NotificationStats",
    "PushChannel",
    "PushKind",
    "classify",
]
