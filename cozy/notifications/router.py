"""NotificationRouter — delivers toasts to one primary channel plus any mirrors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cozy.notifications.channels import NotificationChannel

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Dispatches user-facing notifications.

    Each message goes to one primary channel: the one named in the call, else
    the default, else the only channel registered. Mirror channels (the log,
    typically) receive a copy of every message as well; a failing mirror
    never affects the result of :meth:`send`.

    The process-wide instance is ``NotificationRouter.get()``; tests and
    :class:`~cozy.services.Services` may also build their own.
    """

    _instance: NotificationRouter | None = None

    def __init__(self) -> None:
        self._channels: dict[str, NotificationChannel] = {}
        self._mirrors: list[str] = []
        self._default: str = ""

    @classmethod
    def get(cls) -> NotificationRouter:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Forget the process-wide instance — for tests only."""
        cls._instance = None

    # -- Channels --------------------------------------------------------------

    def register_channel(
        self, channel: NotificationChannel, *, default: bool = False, mirror: bool = False
    ) -> None:
        """Add *channel*. Raises ValueError if its name is taken."""
        if channel.name in self._channels:
            msg = f"Channel '{channel.name}' is already registered"
            raise ValueError(msg)
        self._channels[channel.name] = channel
        if default:
            self._default = channel.name
        if mirror:
            self._mirrors.append(channel.name)

    def set_default_channel(self, name: str) -> None:
        """Make *name* the primary channel. Raises KeyError if not registered."""
        if name not in self._channels:
            msg = f"Channel '{name}' is not registered"
            raise KeyError(msg)
        self._default = name

    def get_channel(self, name: str) -> NotificationChannel | None:
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        return list(self._channels)

    @property
    def default_channel_name(self) -> str:
        return self._default

    @property
    def mirror_channel_names(self) -> list[str]:
        return list(self._mirrors)

    def _primary(self, name: str | None) -> NotificationChannel | None:
        if name:
            return self._channels.get(name)
        if self._default:
            return self._channels[self._default]
        candidates = [c for n, c in self._channels.items() if n not in self._mirrors]
        return candidates[0] if len(candidates) == 1 else None

    # -- Delivery --------------------------------------------------------------

    async def send(
        self,
        user_id: str,
        message: str,
        *,
        level: str = "info",
        channel: str | None = None,
    ) -> bool:
        """Deliver *message*; returns whether the primary channel accepted it."""
        primary = self._primary(channel)
        for name in self._mirrors:
            if primary is not None and name == primary.name:
                continue
            try:
                await self._channels[name].send(user_id, message, level=level)
            except Exception:
                logger.exception("Mirror channel %s failed", name)
        if primary is None:
            logger.warning("No channel for %s notification (requested=%s)", level, channel)
            return False
        return await primary.send(user_id, message, level=level)

    async def error(self, user_id: str, message: str, *, channel: str | None = None) -> bool:
        return await self.send(user_id, message, level="error", channel=channel)

    async def success(self, user_id: str, message: str, *, channel: str | None = None) -> bool:
        return await self.send(user_id, message, level="success", channel=channel)
