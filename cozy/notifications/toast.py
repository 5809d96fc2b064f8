"""In-memory toast queues and a log-only channel."""

from __future__ import annotations

import logging
from collections import OrderedDict, deque
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

LEVELS = ("info", "success", "warning", "error")

# Label used in log lines for visitors without a session.
ANONYMOUS = "anonymous"


@dataclass
class Toast:
    message: str
    level: str = "info"
    created_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class ToastChannel:
    """Keeps the latest transient notifications per user until the client drains them.

    Only signed-in users get a queue; a toast with no user id is refused so
    the router's log mirror is its only record. When more than *max_users*
    users have undrained toasts, the least recently notified queue is dropped.
    """

    def __init__(self, max_per_user: int = 20, max_users: int = 1000) -> None:
        self._max_per_user = max_per_user
        self._max_users = max_users
        self._queues: OrderedDict[str, deque[Toast]] = OrderedDict()

    @property
    def name(self) -> str:
        return "toast"

    def __len__(self) -> int:
        return len(self._queues)

    async def send(self, user_id: str, message: str, *, level: str = "info") -> bool:
        if not user_id:
            logger.debug("No queue for anonymous toast: %s", message)
            return False
        if level not in LEVELS:
            logger.warning("Unknown toast level %r, using info", level)
            level = "info"

        queue = self._queues.get(user_id)
        if queue is None:
            queue = self._queues[user_id] = deque(maxlen=self._max_per_user)
            if len(self._queues) > self._max_users:
                dropped, _ = self._queues.popitem(last=False)
                logger.info("Dropped undelivered toasts for %s", dropped)
        else:
            self._queues.move_to_end(user_id)
        queue.append(Toast(message=message, level=level))
        return True

    def drain(self, user_id: str) -> list[Toast]:
        """Return and clear the user's pending toasts, oldest first."""
        queue = self._queues.pop(user_id, None)
        return list(queue) if queue else []


class LogChannel:
    """Writes notifications to the application log instead of a user."""

    @property
    def name(self) -> str:
        return "log"

    async def send(self, user_id: str, message: str, *, level: str = "info") -> bool:
        log_level = logging.WARNING if level in ("warning", "error") else logging.INFO
        logger.log(log_level, "Notification for %s: %s", user_id or ANONYMOUS, message)
        return True
