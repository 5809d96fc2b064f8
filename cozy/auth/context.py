"""SessionContext — one client's view of its auth session and profile.

Constructed explicitly and handed to whatever needs it (the gate, request
handlers, tests); there is no module-level instance. Listeners subscribe and
get a :class:`Subscription` back; :meth:`SessionContext.close` detaches the
context from the auth service so late events are ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from cozy.auth.models import AuthEvent, Session
from cozy.errors import CozyError

if TYPE_CHECKING:
    from cozy.auth.service import AuthService
    from cozy.notifications.router import NotificationRouter
    from cozy.profiles.models import Profile
    from cozy.profiles.store import ProfileStore

logger = logging.getLogger(__name__)


class SessionStatus(StrEnum):
    LOADING = "loading"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class SessionState:
    status: SessionStatus
    session: Session | None = None
    profile: Profile | None = None

    @property
    def user_id(self) -> str | None:
        return self.session.user_id if self.session else None

    @property
    def has_completed_profile(self) -> bool:
        return self.profile is not None and self.profile.is_complete


StateListener = Callable[[SessionState], None]


class Subscription:
    """Handle returned by :meth:`SessionContext.subscribe`."""

    def __init__(self, listeners: list[StateListener], listener: StateListener) -> None:
        self._listeners = listeners
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._listener in self._listeners

    def unsubscribe(self) -> None:
        if self._listener in self._listeners:
            self._listeners.remove(self._listener)


class SessionContext:
    """Tracks whether this client is signed in, and who they are."""

    def __init__(
        self,
        auth: AuthService,
        profiles: ProfileStore,
        notifier: NotificationRouter | None = None,
    ) -> None:
        self._auth = auth
        self._profiles = profiles
        self._notifier = notifier
        self._state = SessionState(SessionStatus.LOADING)
        self._listeners: list[StateListener] = []
        self._unsubscribe_auth: Callable[[], None] | None = None
        self._closed = False

    # -- State -----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: StateListener) -> Subscription:
        """Call *listener* with the new state after every change."""
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)

    def _set_state(self, state: SessionState) -> None:
        if self._closed or state == self._state:
            return
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener failed")

    async def _toast(self, message: str) -> None:
        if self._notifier is not None:
            user_id = self._state.user_id or ""
            await self._notifier.error(user_id, message)

    # -- Lifecycle -------------------------------------------------------------

    async def start(self, token: str | None = None) -> SessionState:
        """Attach to the auth service and resolve the initial session.

        A failed lookup leaves the context signed out.
        """
        if self._unsubscribe_auth is None:
            self._unsubscribe_auth = self._auth.on_session_change(self._on_auth_event)
        try:
            session = await self._auth.get_session(token)
        except Exception:
            logger.exception("Initial session lookup failed")
            self._set_state(SessionState(SessionStatus.SIGNED_OUT))
            await self._toast("Failed to initialize authentication")
            return self._state
        await self._adopt(session)
        return self._state

    def close(self) -> None:
        """Detach from the auth service. Later events and results are ignored."""
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None
        self._listeners.clear()
        self._closed = True

    async def _on_auth_event(self, event: AuthEvent, session: Session | None) -> None:
        current = self._state.session
        if current is None or session is None or session.token != current.token:
            return
        if event == AuthEvent.SIGNED_OUT:
            self._set_state(SessionState(SessionStatus.SIGNED_OUT))

    async def _adopt(self, session: Session | None) -> None:
        """Move to signed-in (with profile) or signed-out for *session*."""
        if session is None:
            self._set_state(SessionState(SessionStatus.SIGNED_OUT))
            return
        try:
            profile = await self._profiles.get(session.user_id)
        except Exception:
            logger.exception("Profile lookup failed for %s", session.user_id)
            profile = None
        if profile is None:
            # Without a profile the account can't use the app; fail closed.
            self._set_state(SessionState(SessionStatus.SIGNED_OUT))
            await self._toast("Could not load your profile")
            return
        self._set_state(SessionState(SessionStatus.SIGNED_IN, session=session, profile=profile))

    async def refresh_profile(self) -> SessionState:
        """Reload the profile after it was edited."""
        if self._state.session is not None:
            await self._adopt(self._state.session)
        return self._state

    # -- Actions ---------------------------------------------------------------

    async def sign_in(self, email: str, password: str) -> bool:
        try:
            session = await self._auth.sign_in(email, password)
        except CozyError as exc:
            await self._toast(exc.message)
            return False
        await self._adopt(session)
        return self._state.status == SessionStatus.SIGNED_IN

    async def sign_up(self, email: str, password: str, name: str) -> bool:
        try:
            session = await self._auth.sign_up(email, password, name)
        except CozyError as exc:
            await self._toast(exc.message)
            return False
        await self._adopt(session)
        return self._state.status == SessionStatus.SIGNED_IN

    async def sign_out(self) -> None:
        session = self._state.session
        if session is None:
            return
        try:
            await self._auth.sign_out(session.token)
        except Exception:
            logger.exception("Sign-out failed")
            await self._toast("Error signing out")
        self._set_state(SessionState(SessionStatus.SIGNED_OUT))
