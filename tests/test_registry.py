"""Tests for the AI function registry."""

import pytest

from cozy.ai import function_registry
from cozy.ai.registry import FunctionRegistry
from cozy.errors import NotFoundError

# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def reg() -> FunctionRegistry:
    """Fresh registry for each test."""
    return FunctionRegistry()


# -- Decorator registration --------------------------------------------------


async def test_register_via_decorator(reg: FunctionRegistry) -> None:
    @reg.function("ping")
    async def ping(payload: dict, services) -> dict:
        return {"pong": payload.get("n")}

    assert reg.get("ping") is ping
    assert reg.names == ["ping"]
    assert await reg.invoke("ping", {"n": 1}, None) == {"pong": 1}


async def test_unknown_function(reg: FunctionRegistry) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await reg.invoke("nope", {}, None)
    assert exc_info.value.status == 404


def test_reregistering_replaces(reg: FunctionRegistry) -> None:
    @reg.function("x")
    async def first(payload, services):
        return {}

    @reg.function("x")
    async def second(payload, services):
        return {}

    assert reg.get("x") is second
    assert reg.names == ["x"]


def test_all_app_functions_registered() -> None:
    assert set(function_registry.names) == {
        "ai-compatibility",
        "ai-conversation-analysis",
        "ai-dating-assistant",
        "ai-profile-suggestions",
    }


# -- Caller scoping ----------------------------------------------------------


async def test_caller_replaces_user_id(reg: FunctionRegistry) -> None:
    @reg.function("whoami")
    async def whoami(payload, services):
        return {"user": payload["userId"]}

    payload = {"userId": "someone-else"}
    assert await reg.invoke("whoami", payload, None, caller="me") == {"user": "me"}
    assert payload == {"userId": "someone-else"}
    assert await reg.invoke("whoami", payload, None) == {"user": "someone-else"}


async def test_caller_must_be_a_participant(reg: FunctionRegistry) -> None:
    @reg.function("pair", participants=("a", "b"))
    async def pair(payload, services):
        return {"ok": True}

    assert await reg.invoke("pair", {"a": "me", "b": "you"}, None, caller="me") == {"ok": True}
    assert await reg.invoke("pair", {"a": "you", "b": "me"}, None, caller="me") == {"ok": True}
    with pytest.raises(NotFoundError) as exc_info:
        await reg.invoke("pair", {"a": "x", "b": "y"}, None, caller="me")
    assert exc_info.value.status == 404
    # Without a caller the check is skipped
    assert await reg.invoke("pair", {"a": "x", "b": "y"}, None) == {"ok": True}
