"""The onboarding gate's decision function.

``decide`` is pure: the same snapshot and path always give the same answer.
Rules, first match wins:

1. public route → render
2. auth pending → loading
3. signed out (or auth lookup failed) → redirect to ``/auth``
4. route needs a complete profile: pending → loading, otherwise anything but
   ``Known(True)`` → redirect to ``/profile``
5. route needs the questionnaire: questions-exist pending → loading;
   ``Known(False)`` → render (nothing to answer); otherwise answers pending →
   loading, anything but ``Known(True)`` → redirect to ``/questionnaire``
6. render

``/profile`` does not need a complete profile and ``/questionnaire`` does not
need a completed questionnaire, so neither can redirect to itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from cozy.gate.facts import Failed, GateSnapshot, Known, Pending, SignedIn, is_true
from cozy.gate.routes import AUTH_PATH, PROFILE_PATH, QUESTIONNAIRE_PATH, match_route, normalise_path


class Outcome(StrEnum):
    LOADING = "loading"
    REDIRECT = "redirect"
    RENDER = "render"


@dataclass(frozen=True)
class GateDecision:
    outcome: Outcome
    path: str
    target: str | None = None
    questionnaire_skipped: bool = False

    @property
    def destination(self) -> str | None:
        """Where the user ends up: the redirect target, the path itself, or None while loading."""
        if self.outcome == Outcome.REDIRECT:
            return self.target
        if self.outcome == Outcome.RENDER:
            return self.path
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": str(self.outcome),
            "path": self.path,
            "target": self.target,
            "questionnaire_skipped": self.questionnaire_skipped,
        }


def _loading(path: str) -> GateDecision:
    return GateDecision(Outcome.LOADING, path)


def _redirect(path: str, target: str) -> GateDecision:
    return GateDecision(Outcome.REDIRECT, path, target=target)


def _render(path: str, *, skipped: bool = False) -> GateDecision:
    return GateDecision(Outcome.RENDER, path, questionnaire_skipped=skipped)


def decide(snapshot: GateSnapshot, path: str) -> GateDecision:
    """Where a user with *snapshot* asking for *path* may go."""
    path = normalise_path(path)
    rule = match_route(path)

    if not rule.requires_auth:
        return _render(path)

    if isinstance(snapshot.auth, Pending):
        return _loading(path)
    if not isinstance(snapshot.auth, SignedIn):
        return _redirect(path, AUTH_PATH)

    if rule.requires_profile:
        if isinstance(snapshot.profile_complete, Pending):
            return _loading(path)
        if not is_true(snapshot.profile_complete):
            return _redirect(path, PROFILE_PATH)

    if rule.requires_questionnaire:
        questions = snapshot.questions_exist
        if isinstance(questions, Pending):
            return _loading(path)
        # A failed lookup counts as "questions exist" so gating still applies.
        if isinstance(questions, Known) and not questions.value:
            return _render(path, skipped=True)
        if isinstance(snapshot.has_answers, Pending):
            return _loading(path)
        if not is_true(snapshot.has_answers):
            return _redirect(path, QUESTIONNAIRE_PATH)

    return _render(path)


def relevant_facts(path: str) -> tuple[str, ...]:
    """Names of the snapshot fields that can influence the decision for *path*."""
    rule = match_route(path)
    if not rule.requires_auth:
        return ()
    facts = ["auth"]
    if rule.requires_profile:
        facts.append("profile_complete")
    if rule.requires_questionnaire:
        facts.extend(("questions_exist", "has_answers"))
    return tuple(facts)


def failed_facts(snapshot: GateSnapshot) -> list[str]:
    """Names of the facts whose lookup failed."""
    return [
        name
        for name in ("auth", "profile_complete", "questions_exist", "has_answers")
        if isinstance(getattr(snapshot, name), Failed)
    ]
