"""AI function registry — the callable endpoints under ``/functions/{name}``."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from cozy.errors import NotFoundError

if TYPE_CHECKING:
    from cozy.services import Services

logger = logging.getLogger(__name__)

# Function signature: async (payload: dict, services: Services) -> dict
AIFunction = Callable[[dict[str, Any], "Services"], Awaitable[dict[str, Any]]]


class FunctionRegistry:
    """Registry for named AI functions.

    Usage::

        registry = FunctionRegistry()

        @registry.function("ai-compatibility", participants=("userOneId", "userTwoId"))
        async def compatibility(payload: dict, services: Services) -> dict:
            ...

    When invoked on behalf of a signed-in *caller*, ``userId`` is always the
    caller, and the caller must appear in one of the function's
    *participants* fields.
    """

    def __init__(self) -> None:
        self._functions: dict[str, AIFunction] = {}
        self._participants: dict[str, tuple[str, ...]] = {}

    def function(
        self, name: str, *, participants: tuple[str, ...] = ()
    ) -> Callable[[AIFunction], AIFunction]:
        """Decorator to register an async function under *name*."""

        def decorator(fn: AIFunction) -> AIFunction:
            self._functions[name] = fn
            self._participants[name] = participants
            logger.debug("Registered AI function: %s", name)
            return fn

        return decorator

    def get(self, name: str) -> AIFunction | None:
        return self._functions.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._functions)

    async def invoke(
        self,
        name: str,
        payload: dict[str, Any],
        services: Services,
        *,
        caller: str | None = None,
    ) -> dict[str, Any]:
        fn = self.get(name)
        if fn is None:
            raise NotFoundError("Function", name)
        if caller is not None:
            payload = {**payload, "userId": caller}
            fields = self._participants[name]
            if fields and caller not in [payload.get(f) for f in fields]:
                logger.warning("%s refused %s: not one of %s", name, caller, fields)
                ids = "/".join(str(payload.get(f)) for f in fields)
                raise NotFoundError("Match", ids)
        return await fn(payload, services)


function_registry = FunctionRegistry()
