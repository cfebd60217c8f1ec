"""PushChannel protocol — interface for push-notification delivery."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class PushChannel(Protocol):
    """Protocol that all push delivery channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'log', 'webpush')."""
        ...

    def has_permission(self) -> bool:
        """Whether the owner allowed pushes on this channel."""
        ...

    async def send(self, title: str, body: str, tag: str) -> bool:
        """Deliver one push. Returns True on success."""
        ...


class LogChannel:
    """Channel that writes pushes to the log. Always permitted."""

    def __init__(self, channel_name: str = "log") -> None:
        self._name = channel_name
        self.sent: list[tuple[str, str, str]] = []

    @property
    def name(self) -> str:
        return self._name

    def has_permission(self) -> bool:
        return True

    async def send(self, title: str, body: str, tag: str) -> bool:
        self.sent.append((title, body, tag))
        logger.info("[push:%s] %s: %s", tag, title, body)
        return True
