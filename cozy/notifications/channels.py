"""NotificationChannel protocol — interface for all notification delivery channels."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy."""

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'toast', 'log')."""
        ...

    async def send(self, user_id: str, message: str, *, level: str = "info") -> bool:
        """Deliver a message to a user. Returns True on success.

        *level* is one of ``info``, ``success``, ``warning``, ``error``.
        """
        ...
