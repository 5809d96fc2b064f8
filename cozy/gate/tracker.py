"""GateTracker — feeds facts into the gate as they arrive, emits settled decisions."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from cozy.auth.context import SessionStatus
from cozy.gate.decide import GateDecision, Outcome, decide
from cozy.gate.facts import (
    PENDING,
    SIGNED_OUT,
    Failed,
    GateSnapshot,
    SignedIn,
    from_bool,
)

if TYPE_CHECKING:
    from cozy.auth.context import SessionContext, SessionState, Subscription
    from cozy.gate.facts import AuthFact, Fact

logger = logging.getLogger(__name__)

DecisionListener = Callable[[GateDecision], None]


class GateTracker:
    """Holds the current snapshot for one screen and re-decides on every update.

    Listeners hear a decision only once the facts relevant to it are
    settled, and only when it differs from the last one they heard. Once a
    settled decision has been emitted, a later ``loading`` (a fact being
    re-fetched) is not emitted; the previous decision stands until the new
    one settles. After :meth:`close`, updates are ignored.
    """

    def __init__(self, path: str, snapshot: GateSnapshot | None = None) -> None:
        self._path = path
        self._snapshot = snapshot or GateSnapshot()
        self._listeners: list[DecisionListener] = []
        self._emitted: GateDecision | None = None
        self._session_sub: Subscription | None = None
        self._closed = False
        self._decision = decide(self._snapshot, self._path)

    # -- Read ------------------------------------------------------------------

    @property
    def snapshot(self) -> GateSnapshot:
        return self._snapshot

    @property
    def decision(self) -> GateDecision:
        """The decision for the current snapshot, possibly ``loading``."""
        return self._decision

    @property
    def settled_decision(self) -> GateDecision | None:
        """The last decision emitted to listeners, or None before the first."""
        return self._emitted

    def subscribe(self, listener: DecisionListener) -> Callable[[], None]:
        """Register *listener*; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- Write -----------------------------------------------------------------

    def update(self, **facts: Fact | AuthFact) -> GateDecision | None:
        """Replace some facts and re-decide. Returns the decision if it was emitted."""
        if self._closed:
            logger.debug("Ignoring late gate update for %s: %s", self._path, list(facts))
            return None
        self._snapshot = self._snapshot.with_facts(**facts)
        return self._evaluate()

    def navigate(self, path: str) -> GateDecision | None:
        """Point the tracker at another screen, keeping the facts."""
        if self._closed:
            return None
        self._path = path
        return self._evaluate()

    def set_auth(self, user_id: str | None | Failed) -> GateDecision | None:
        """``None`` means signed out; a :class:`Failed` means the lookup raised."""
        fact: AuthFact
        if isinstance(user_id, Failed):
            fact = user_id
        elif user_id is None:
            fact = SIGNED_OUT
        else:
            fact = SignedIn(user_id)
        return self.update(auth=fact)

    def set_profile_complete(self, value: bool | None | Failed) -> GateDecision | None:
        return self.update(profile_complete=self._as_fact(value))

    def set_questions_exist(self, value: bool | None | Failed) -> GateDecision | None:
        return self.update(questions_exist=self._as_fact(value))

    def set_has_answers(self, value: bool | None | Failed) -> GateDecision | None:
        return self.update(has_answers=self._as_fact(value))

    @staticmethod
    def _as_fact(value: bool | None | Failed) -> Fact:
        return value if isinstance(value, Failed) else from_bool(value)

    # -- Session binding -------------------------------------------------------

    def bind_session(self, context: SessionContext) -> None:
        """Follow a :class:`SessionContext` for the auth and profile facts."""
        if self._session_sub is not None:
            self._session_sub.unsubscribe()
        self._session_sub = context.subscribe(self._on_session_state)
        self._on_session_state(context.state)

    def _on_session_state(self, state: SessionState) -> None:
        if state.status == SessionStatus.LOADING:
            self.update(auth=PENDING, profile_complete=PENDING)
        elif state.status == SessionStatus.SIGNED_OUT:
            self.update(auth=SIGNED_OUT, profile_complete=PENDING)
        else:
            self.update(
                auth=SignedIn(state.user_id or ""),
                profile_complete=from_bool(state.has_completed_profile),
            )

    # -- Lifecycle -------------------------------------------------------------

    def close(self) -> None:
        if self._session_sub is not None:
            self._session_sub.unsubscribe()
            self._session_sub = None
        self._listeners.clear()
        self._closed = True

    # -- Internal --------------------------------------------------------------

    def _evaluate(self) -> GateDecision | None:
        self._decision = decide(self._snapshot, self._path)
        if self._decision.outcome == Outcome.LOADING:
            return None
        if self._decision == self._emitted:
            return None
        self._emitted = self._decision
        for listener in list(self._listeners):
            try:
                listener(self._decision)
            except Exception:
                logger.exception("Gate listener failed")
        return self._decision
