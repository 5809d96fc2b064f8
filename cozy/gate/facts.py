"""Gate inputs as tagged unions.

Every fact the gate consumes is either still loading (:class:`Pending`),
settled (:class:`Known` / :class:`SignedIn` / :class:`SignedOut`), or
:class:`Failed`. Failed facts count as "no" — the gate fails closed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class Pending:
    """The lookup has not finished yet."""


@dataclass(frozen=True)
class Known:
    value: bool


@dataclass(frozen=True)
class Failed:
    """The lookup raised; *reason* is for logs only."""

    reason: str = ""


@dataclass(frozen=True)
class SignedIn:
    user_id: str


@dataclass(frozen=True)
class SignedOut:
    pass


PENDING = Pending()
SIGNED_OUT = SignedOut()
YES = Known(True)
NO = Known(False)

Fact = Pending | Known | Failed
AuthFact = Pending | SignedIn | SignedOut | Failed


def is_settled(fact: Fact | AuthFact) -> bool:
    return not isinstance(fact, Pending)


def is_true(fact: Fact) -> bool:
    """Only an explicit ``Known(True)`` counts; pending and failed do not."""
    return isinstance(fact, Known) and fact.value


def from_bool(value: bool | None) -> Fact:
    """``None`` means still loading."""
    if value is None:
        return PENDING
    return YES if value else NO


@dataclass(frozen=True)
class GateSnapshot:
    """Everything the gate knows at one instant."""

    auth: AuthFact = PENDING
    profile_complete: Fact = PENDING
    questions_exist: Fact = PENDING
    has_answers: Fact = PENDING

    def with_facts(self, **changes: Fact | AuthFact) -> GateSnapshot:
        return replace(self, **changes)

    @property
    def user_id(self) -> str | None:
        return self.auth.user_id if isinstance(self.auth, SignedIn) else None
