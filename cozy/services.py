"""Explicitly wired application services.

Everything that holds state is built once here and handed to the HTTP layer
and the AI functions; tests build their own with a temporary database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from cozy.auth.context import SessionContext
from cozy.auth.service import AuthService
from cozy.chat.store import MessageStore
from cozy.events.store import EventStore
from cozy.gate.resolver import GateResolver
from cozy.matches.store import MatchStore
from cozy.memory_tree.store import MemoryTreeStore
from cozy.notifications import LogChannel, NotificationRouter, ToastChannel
from cozy.profiles.store import ProfileStore
from cozy.questionnaire.store import QuestionnaireStore
from cozy.storage import BlobStore

logger = logging.getLogger(__name__)


@dataclass
class Services:
    blobs: BlobStore
    profiles: ProfileStore
    auth: AuthService
    questionnaire: QuestionnaireStore
    matches: MatchStore
    messages: MessageStore
    memory_trees: MemoryTreeStore
    events: EventStore
    notifier: NotificationRouter
    toasts: ToastChannel
    gate: GateResolver

    @classmethod
    def build(
        cls,
        db_path: Path | None = None,
        storage_dir: Path | None = None,
        base_url: str | None = None,
        notifier: NotificationRouter | None = None,
    ) -> Services:
        """Construct every store over one database and one blob directory.

        Without *notifier* a fresh router is used with the toast channel as
        default and the log channel mirroring every message.
        """
        blobs = BlobStore(root=storage_dir, base_url=base_url)
        profiles = ProfileStore(db_path, blobs=blobs)
        auth = AuthService(profiles, db_path)
        questionnaire = QuestionnaireStore(db_path)

        if notifier is None:
            notifier = NotificationRouter()
        toasts = notifier.get_channel("toast")
        if not isinstance(toasts, ToastChannel):
            toasts = ToastChannel()
            notifier.register_channel(toasts, default=True)
        if notifier.get_channel("log") is None:
            notifier.register_channel(LogChannel(), mirror=True)

        services = cls(
            blobs=blobs,
            profiles=profiles,
            auth=auth,
            questionnaire=questionnaire,
            matches=MatchStore(profiles, db_path),
            messages=MessageStore(profiles, db_path),
            memory_trees=MemoryTreeStore(db_path, blobs=blobs),
            events=EventStore(db_path),
            notifier=notifier,
            toasts=toasts,
            gate=GateResolver(auth, profiles, questionnaire, notifier),
        )
        logger.info("Services ready (channels: %s)", notifier.list_channels())
        return services

    def session_context(self) -> SessionContext:
        """A fresh session context bound to these services."""
        return SessionContext(self.auth, self.profiles, self.notifier)
