"""GateResolver — gathers the gate's facts for one request and decides.

The session is resolved first; the remaining lookups the route needs run
concurrently. A lookup that raises becomes a :class:`Failed` fact (the gate
fails closed) and produces one toast.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from cozy.gate.decide import GateDecision, relevant_facts
from cozy.gate.facts import Failed, from_bool
from cozy.gate.tracker import GateTracker

if TYPE_CHECKING:
    from cozy.auth.service import AuthService
    from cozy.notifications.router import NotificationRouter
    from cozy.profiles.store import ProfileStore
    from cozy.questionnaire.store import QuestionnaireStore

logger = logging.getLogger(__name__)

_FAILURE_MESSAGES = {
    "auth": "Failed to initialize authentication",
    "profile_complete": "Could not check your profile",
    "questions_exist": "Could not load the questionnaire",
    "has_answers": "Could not check your questionnaire answers",
}


class GateResolver:
    """Answers "where may this caller go?" for a token and a path."""

    def __init__(
        self,
        auth: AuthService,
        profiles: ProfileStore,
        questionnaire: QuestionnaireStore,
        notifier: NotificationRouter | None = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._questionnaire = questionnaire
        self._notifier = notifier

    async def resolve(self, token: str | None, path: str) -> GateDecision:
        tracker = GateTracker(path)
        needed = relevant_facts(path)
        if not needed:
            return tracker.decision

        user_id = ""
        try:
            session = await self._auth.get_session(token)
        except Exception as exc:
            logger.exception("Session lookup failed for gate on %s", path)
            tracker.set_auth(Failed(str(exc)))
            await self._toast("", "auth")
        else:
            tracker.set_auth(session.user_id if session else None)
            user_id = session.user_id if session else ""

        if user_id:
            lookups: dict[str, Callable[[], Awaitable[bool]]] = {
                "profile_complete": lambda: self._profiles.is_complete(user_id),
                "questions_exist": self._questionnaire.questions_exist,
                "has_answers": lambda: self._questionnaire.has_answers(user_id),
            }
            names = [name for name in needed if name in lookups]
            results = await asyncio.gather(
                *(lookups[name]() for name in names), return_exceptions=True
            )
            for name, result in zip(names, results, strict=True):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                if isinstance(result, BaseException):
                    logger.error(
                        "Gate lookup %s failed for %s", name, user_id, exc_info=result
                    )
                    tracker.update(**{name: Failed(str(result))})
                    await self._toast(user_id, name)
                else:
                    tracker.update(**{name: from_bool(bool(result))})

        decision = tracker.decision
        tracker.close()
        logger.debug("Gate %s for %s: %s", path, user_id or "anonymous", decision.outcome)
        return decision

    async def _toast(self, user_id: str, fact: str) -> None:
        if self._notifier is not None:
            await self._notifier.error(user_id, _FAILURE_MESSAGES[fact])
