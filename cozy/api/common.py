"""Request helpers and middleware shared by every API route."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from cozy.auth.models import Session
from cozy.config import settings
from cozy.errors import AuthError, CozyError, ForbiddenError, ValidationError
from cozy.gate.decide import Outcome
from cozy.gate.routes import AUTH_PATH
from cozy.services import Services

logger = logging.getLogger(__name__)

SERVICES_KEY = web.AppKey("services", Services)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"


def services(request: web.Request) -> Services:
    return request.app[SERVICES_KEY]


def bearer_token(request: web.Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def current_session(request: web.Request) -> Session:
    """The caller's session. Raises ``AuthError`` when there is none."""
    session = await services(request).auth.get_session(bearer_token(request))
    if session is None:
        raise AuthError("Not signed in")
    return session


async def require_screen(request: web.Request, path: str) -> Session:
    """Allow the request only if the gate would render *path* for the caller."""
    token = bearer_token(request)
    decision = await services(request).gate.resolve(token, path)
    if decision.outcome == Outcome.REDIRECT:
        if decision.target == AUTH_PATH:
            raise AuthError("Not signed in")
        raise ForbiddenError("onboarding incomplete", redirect=decision.target)
    return await current_session(request)


async def read_json(request: web.Request) -> dict[str, Any]:
    """The request body as a JSON object; an empty body is ``{}``."""
    if not request.can_read_body:
        return {}
    try:
        payload = await request.json()
    except ValueError as exc:
        raise ValidationError("invalid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object")
    return payload


def require_fields(payload: dict[str, Any], *names: str) -> list[Any]:
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise ValidationError(f"Missing field(s): {', '.join(missing)}")
    return [payload[n] for n in names]


# -- Middleware ----------------------------------------------------------------


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Render domain errors as ``{"error": ...}`` JSON."""
    try:
        return await handler(request)
    except CozyError as exc:
        if exc.status >= 500:
            logger.warning("%s %s failed: %s", request.method, request.path, exc.message)
        body: dict[str, Any] = {"error": exc.message}
        redirect = getattr(exc, "redirect", None)
        if redirect:
            body["redirect"] = redirect
        return web.json_response(body, status=exc.status)


def _allowed_origin(origin: str) -> str | None:
    allowed = settings.get_cors_origins()
    if "*" in allowed:
        return "*"
    if origin and origin in allowed:
        return origin
    return None


def _add_cors_headers(request: web.Request, headers) -> None:
    origin = _allowed_origin(request.headers.get("Origin", ""))
    if origin is not None:
        headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Headers"] = CORS_ALLOW_HEADERS
        headers["Access-Control-Allow-Methods"] = CORS_ALLOW_METHODS


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Answer preflight requests and tag every response with CORS headers."""
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=204)
    else:
        try:
            response = await handler(request)
        except web.HTTPException as exc:
            _add_cors_headers(request, exc.headers)
            raise
    _add_cors_headers(request, response.headers)
    return response
