"""NotificationRouter — singleton that hands pushes to registered channels."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from obligations.notifications.channels import PushChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Routes outbound pushes to the appropriate channel.

    Singleton accessed via ``NotificationRouter.get()``.
    """

    _instance: NotificationRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, PushChannel] = {}
        self._default: str = ""

    @classmethod
    def get(cls) -> NotificationRouter:
        """Return the singleton instance, creating it if needed."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset singleton — for tests only."""
        cls._instance = None

    def register_channel(self, channel: PushChannel) -> None:
        """Register a channel. Raises ValueError on duplicate name."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel

    def set_default_channel(self, name: str) -> None:
        """Set the default channel by name. Raises KeyError if not registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def list_channels(self) -> list[str]:
        return list(self._channels.keys())

    @property
    def default_channel_name(self) -> str:
        return self._default

    def _resolve_channel(self, name: str | None) -> PushChannel | None:
        """Resolve a channel: explicit name → default → only registered channel."""
        if name:
            return self._channels.get(name)
        if self._default:
            return self._channels.get(self._default)
        if len(self._channels) == 1:
            return next(iter(self._channels.values()))
        return None

    def has_permission(self, *, channel: str | None = None) -> bool:
        """Whether the resolved channel may deliver pushes."""
        ch = self._resolve_channel(channel)
        return ch is not None and ch.has_permission()

    async def send(
        self,
        title: str,
        body: str,
        *,
        tag: str,
        channel: str | None = None,
    ) -> bool:
        """Send a push via the resolved channel, if it has permission."""
        ch = self._resolve_channel(channel)
        if ch is None:
            logger.warning("No channel resolved for push (requested=%s)", channel)
            return False
        if not ch.has_permission():
            logger.info("Push suppressed, no permission on channel '%s'", ch.name)
            return False
        return await ch.send(title, body, tag)
