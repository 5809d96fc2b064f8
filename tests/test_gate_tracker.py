"""Tests for GateTracker — settled, de-duplicated gate decisions."""

from cozy.auth.context import SessionStatus
from cozy.gate import GateTracker, Outcome
from cozy.gate.facts import Failed, SignedIn
from cozy.services import Services

PASSWORD = "correct horse battery"


def _collect(tracker: GateTracker) -> list:
    seen = []
    tracker.subscribe(seen.append)
    return seen


def test_initial_decision_is_loading() -> None:
    tracker = GateTracker("/matches")
    assert tracker.decision.outcome == Outcome.LOADING
    assert tracker.settled_decision is None


def test_public_path_is_settled_immediately() -> None:
    assert GateTracker("/").decision.outcome == Outcome.RENDER


def test_no_emission_until_relevant_facts_settle() -> None:
    tracker = GateTracker("/matches")
    seen = _collect(tracker)

    assert tracker.set_auth("user-1") is None
    assert tracker.set_has_answers(False) is None
    assert tracker.set_profile_complete(True) is None
    assert seen == []

    decision = tracker.set_questions_exist(True)

    assert decision is not None
    assert decision.target == "/questionnaire"
    assert seen == [decision]


def test_out_of_order_facts_give_no_intermediate_target() -> None:
    # The profile fact arriving late must not briefly send the user to /questionnaire.
    tracker = GateTracker("/chat/5")
    seen = _collect(tracker)

    tracker.set_auth("user-1")
    tracker.set_questions_exist(True)
    tracker.set_has_answers(False)
    tracker.set_profile_complete(False)

    assert [d.target for d in seen] == ["/profile"]


def test_signed_out_emits_at_once() -> None:
    tracker = GateTracker("/matches")
    seen = _collect(tracker)
    tracker.set_auth(None)
    assert [d.target for d in seen] == ["/auth"]


def test_failed_auth_redirects_to_auth() -> None:
    tracker = GateTracker("/profile")
    assert tracker.set_auth(Failed("boom")).target == "/auth"


def test_unchanged_decision_not_emitted_twice() -> None:
    tracker = GateTracker("/profile")
    seen = _collect(tracker)
    tracker.set_auth("user-1")
    tracker.set_profile_complete(True)
    tracker.set_questions_exist(False)
    assert len(seen) == 1


def test_no_flicker_back_to_loading() -> None:
    tracker = GateTracker("/matches")
    seen = _collect(tracker)
    tracker.update(auth=SignedIn("user-1"))
    tracker.set_profile_complete(True)
    tracker.set_questions_exist(True)
    tracker.set_has_answers(True)
    assert [d.outcome for d in seen] == [Outcome.RENDER]

    # Re-fetching answers goes pending; nothing is emitted and the last decision stands.
    assert tracker.set_has_answers(None) is None
    assert tracker.decision.outcome == Outcome.LOADING
    assert tracker.settled_decision.outcome == Outcome.RENDER

    tracker.set_has_answers(False)
    assert [d.target for d in seen] == [None, "/questionnaire"]


def test_navigate_keeps_facts() -> None:
    tracker = GateTracker("/profile")
    tracker.set_auth("user-1")
    tracker.set_profile_complete(False)
    assert tracker.decision.outcome == Outcome.RENDER

    decision = tracker.navigate("/matches")

    assert decision.target == "/profile"


def test_close_ignores_late_updates() -> None:
    tracker = GateTracker("/matches")
    seen = _collect(tracker)
    tracker.close()

    assert tracker.set_auth(None) is None
    assert tracker.navigate("/profile") is None
    assert seen == []
    assert tracker.decision.outcome == Outcome.LOADING


def test_unsubscribe() -> None:
    tracker = GateTracker("/matches")
    seen = []
    unsubscribe = tracker.subscribe(seen.append)
    unsubscribe()
    tracker.set_auth(None)
    assert seen == []


def test_failing_listener_does_not_stop_others() -> None:
    tracker = GateTracker("/matches")

    def broken(decision):
        raise RuntimeError("boom")

    tracker.subscribe(broken)
    seen = _collect(tracker)
    tracker.set_auth(None)
    assert len(seen) == 1


# -- Session binding ---------------------------------------------------------------


async def test_bind_session_follows_context(services: Services) -> None:
    ctx = services.session_context()
    tracker = GateTracker("/questionnaire")
    seen = _collect(tracker)
    tracker.bind_session(ctx)
    assert seen == []

    await ctx.start(None)
    assert [d.target for d in seen] == ["/auth"]

    await ctx.sign_up("ana@example.com", PASSWORD, "Ana")
    assert ctx.state.status == SessionStatus.SIGNED_IN
    assert [d.target for d in seen] == ["/auth", "/profile"]


async def test_close_detaches_from_session(services: Services) -> None:
    ctx = services.session_context()
    tracker = GateTracker("/profile")
    tracker.bind_session(ctx)
    tracker.close()

    await ctx.start(None)

    assert tracker.decision.outcome == Outcome.LOADING
