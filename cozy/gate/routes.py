"""Screens the app can land on and what each one requires."""

from __future__ import annotations

import re
from dataclasses import dataclass

AUTH_PATH = "/auth"
PROFILE_PATH = "/profile"
QUESTIONNAIRE_PATH = "/questionnaire"
MATCHES_PATH = "/matches"


@dataclass(frozen=True)
class RouteRule:
    name: str
    pattern: re.Pattern[str]
    requires_auth: bool = False
    requires_profile: bool = False
    requires_questionnaire: bool = False

    def matches(self, path: str) -> bool:
        return self.pattern.fullmatch(path) is not None


def _rule(name: str, pattern: str, *, auth: bool = False, profile: bool = False,
          questionnaire: bool = False) -> RouteRule:
    return RouteRule(
        name=name,
        pattern=re.compile(pattern),
        requires_auth=auth,
        requires_profile=profile,
        requires_questionnaire=questionnaire,
    )


ROUTES: tuple[RouteRule, ...] = (
    _rule("index", r"/"),
    _rule("auth", re.escape(AUTH_PATH)),
    _rule("profile", re.escape(PROFILE_PATH), auth=True),
    _rule("questionnaire", re.escape(QUESTIONNAIRE_PATH), auth=True, profile=True),
    _rule("matches", re.escape(MATCHES_PATH), auth=True, profile=True, questionnaire=True),
    _rule("chat", r"/chat/[^/]+", auth=True, profile=True, questionnaire=True),
    _rule("memory_tree", r"/memory-tree/[^/]+", auth=True, profile=True, questionnaire=True),
)

NOT_FOUND = _rule("not_found", r".*")


def normalise_path(path: str) -> str:
    """Drop query string, fragment and trailing slash; ensure a leading slash."""
    path = path.split("?", 1)[0].split("#", 1)[0].strip()
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def match_route(path: str) -> RouteRule:
    """The rule for *path*; unknown paths get the public not-found screen."""
    path = normalise_path(path)
    for rule in ROUTES:
        if rule.matches(path):
            return rule
    return NOT_FOUND
