"""In-memory assistant conversations with a sliding window."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field

from cozy.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Turn:
    """A single conversation turn."""

    role: str  # "user" or "assistant"
    content: str


@dataclass
class AssistantSession:
    """Conversation history for one assistant chat."""

    turns: list[Turn] = field(default_factory=list)
    window_size: int = field(default_factory=lambda: settings.assistant_window_size)

    def add(self, role: str, content: str) -> None:
        """Append a turn and trim to the sliding window."""
        self.turns.append(Turn(role=role, content=content))
        if len(self.turns) > self.window_size:
            self.turns = self.turns[-self.window_size :]
        # The API wants the history to open with a user turn.
        while self.turns and self.turns[0].role != "user":
            self.turns.pop(0)

    def to_api_messages(self) -> list[dict[str, str]]:
        """Format turns for the Claude API."""
        return [{"role": t.role, "content": t.content} for t in self.turns]


# Keyed by "{user_id}:{session_id}" so one user can't read another's history.
# Least recently used sessions are forgotten past MAX_SESSIONS.
MAX_SESSIONS = 1000
_sessions: OrderedDict[str, AssistantSession] = OrderedDict()


def _key(user_id: str, session_id: str) -> str:
    return f"{user_id}:{session_id}"


def get_session(user_id: str, session_id: str) -> AssistantSession:
    """Get or create an assistant session."""
    key = _key(user_id, session_id)
    session = _sessions.get(key)
    if session is not None:
        _sessions.move_to_end(key)
        return session

    session = _sessions[key] = AssistantSession()
    logger.debug("New assistant session %s", key)
    while len(_sessions) > MAX_SESSIONS:
        evicted, _ = _sessions.popitem(last=False)
        logger.debug("Forgot assistant session %s", evicted)
    return session
