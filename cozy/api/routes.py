"""HTTP routes for the app's screens and AI functions."""

from __future__ import annotations

import logging
import mimetypes
from datetime import datetime
from typing import Any

import pydantic
from aiohttp import BodyPartReader, web

from cozy.ai import function_registry
from cozy.api.common import (
    bearer_token,
    current_session,
    read_json,
    require_fields,
    require_screen,
    services,
)
from cozy.config import settings
from cozy.errors import AuthError, ForbiddenError, NotFoundError, ValidationError
from cozy.gate.routes import MATCHES_PATH, QUESTIONNAIRE_PATH
from cozy.profiles.models import ProfileUpdate

logger = logging.getLogger(__name__)

routes = web.RouteTableDef()


def _chat_path(other_id: str) -> str:
    return f"/chat/{other_id}"


def _memory_tree_path(key: str) -> str:
    return f"/memory-tree/{key}"


@routes.get("/health")
async def health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


# -- Auth ----------------------------------------------------------------------


@routes.post("/auth/sign-up")
async def sign_up(request: web.Request) -> web.Response:
    payload = await read_json(request)
    email, password = require_fields(payload, "email", "password")
    svc = services(request)
    session = await svc.auth.sign_up(email, password, payload.get("name", ""))
    profile = await svc.profiles.require(session.user_id)
    return web.json_response(
        {"session": session.to_dict(), "profile": profile.to_dict()}, status=201
    )


@routes.post("/auth/sign-in")
async def sign_in(request: web.Request) -> web.Response:
    payload = await read_json(request)
    email, password = require_fields(payload, "email", "password")
    svc = services(request)
    session = await svc.auth.sign_in(email, password)
    profile = await svc.profiles.get(session.user_id)
    return web.json_response({
        "session": session.to_dict(),
        "profile": profile.to_dict() if profile else None,
    })


@routes.post("/auth/sign-out")
async def sign_out(request: web.Request) -> web.Response:
    token = bearer_token(request)
    if token is None:
        raise AuthError("Not signed in")
    signed_out = await services(request).auth.sign_out(token)
    return web.json_response({"ok": signed_out})


@routes.get("/auth/session")
async def get_session(request: web.Request) -> web.Response:
    svc = services(request)
    session = await svc.auth.get_session(bearer_token(request))
    if session is None:
        return web.json_response({"session": None, "profile": None})
    profile = await svc.profiles.get(session.user_id)
    return web.json_response({
        "session": session.to_dict(),
        "profile": profile.to_dict() if profile else None,
    })


@routes.get("/gate")
async def gate(request: web.Request) -> web.Response:
    """Where the caller may go when asking for ``?path=``."""
    path = request.query.get("path")
    if not path:
        raise ValidationError("Missing query parameter: path")
    decision = await services(request).gate.resolve(bearer_token(request), path)
    return web.json_response(decision.to_dict())


# -- Profile -------------------------------------------------------------------


@routes.get("/profile")
async def get_profile(request: web.Request) -> web.Response:
    session = await current_session(request)
    profile = await services(request).profiles.require(session.user_id)
    return web.json_response(profile.to_dict())


@routes.put("/profile")
async def update_profile(request: web.Request) -> web.Response:
    session = await current_session(request)
    try:
        changes = ProfileUpdate.model_validate(await read_json(request))
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid profile: {exc.errors()[0]['msg']}") from exc
    profile = await services(request).profiles.update(session.user_id, changes)
    return web.json_response(profile.to_dict())


async def _read_file_part(request: web.Request, field: str = "file") -> tuple[str, bytes, dict[str, str]]:
    """Pull one uploaded file and any plain form fields out of a multipart body."""
    if not request.content_type.startswith("multipart/"):
        raise ValidationError("Expected a multipart upload")
    reader = await request.multipart()
    filename, data = "", b""
    fields: dict[str, str] = {}
    async for part in reader:
        if not isinstance(part, BodyPartReader):
            continue
        if part.name == field:
            filename = part.filename or "upload"
            data = await part.read(decode=False)
        elif part.name:
            fields[part.name] = await part.text()
    return filename, bytes(data), fields


@routes.post("/profile/avatar")
async def upload_avatar(request: web.Request) -> web.Response:
    session = await current_session(request)
    filename, data, _ = await _read_file_part(request)
    if not data:
        raise ValidationError("No file uploaded")
    profile = await services(request).profiles.upload_avatar(session.user_id, filename, data)
    return web.json_response(profile.to_dict())


# -- Questionnaire -------------------------------------------------------------


@routes.get("/questions")
async def list_questions(request: web.Request) -> web.Response:
    await require_screen(request, QUESTIONNAIRE_PATH)
    questions = await services(request).questionnaire.list_questions()
    return web.json_response([q.to_dict() for q in questions])


@routes.get("/questionnaire/answers")
async def get_answers(request: web.Request) -> web.Response:
    session = await require_screen(request, QUESTIONNAIRE_PATH)
    answers = await services(request).questionnaire.get_answers(session.user_id)
    return web.json_response({str(qid): answer for qid, answer in answers.items()})


@routes.post("/questionnaire/answers")
async def save_answers(request: web.Request) -> web.Response:
    session = await require_screen(request, QUESTIONNAIRE_PATH)
    payload = await read_json(request)
    raw = payload.get("answers")
    if not isinstance(raw, dict):
        raise ValidationError("answers must be an object of question id to answer")
    try:
        answers = {int(qid): str(answer) for qid, answer in raw.items()}
    except ValueError as exc:
        raise ValidationError("Question ids must be integers") from exc
    svc = services(request)
    saved = await svc.questionnaire.save_answers(session.user_id, answers)
    completed = await svc.questionnaire.has_completed(session.user_id)
    return web.json_response({"saved": saved, "completed": completed})


# -- Matches -------------------------------------------------------------------


@routes.get("/matches")
async def list_matches(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    matches = await services(request).matches.list_for_user(session.user_id)
    return web.json_response([m.to_dict() for m in matches])


@routes.get("/matches/potential")
async def potential_matches(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    profiles = await services(request).profiles.list_others(
        session.user_id, limit=settings.potential_match_limit
    )
    return web.json_response([p.public_dict() for p in profiles])


@routes.get("/matches/favorites")
async def favorite_matches(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    favorites = await services(request).matches.favorites(session.user_id)
    return web.json_response([m.to_dict() for m in favorites])


@routes.post("/matches")
async def create_match(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    payload = await read_json(request)
    (other_id,) = require_fields(payload, "userId")
    svc = services(request)
    await svc.profiles.require(other_id)
    try:
        score = float(payload.get("score", 0))
    except (TypeError, ValueError) as exc:
        raise ValidationError("score must be a number") from exc
    match = await svc.matches.create_match(session.user_id, other_id, score)
    return web.json_response(match.to_dict(), status=201)


async def _own_match(request: web.Request, user_id: str):
    match_id = request.match_info["match_id"]
    match = await services(request).matches.get(match_id)
    if match is None or not match.involves(user_id):
        raise NotFoundError("Match", match_id)
    return match


@routes.post("/matches/{match_id}/accept")
async def accept_match(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    match = await _own_match(request, session.user_id)
    match = await services(request).matches.accept(match.id)
    return web.json_response(match.to_dict())


@routes.post("/matches/{match_id}/reject")
async def reject_match(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    match = await _own_match(request, session.user_id)
    match = await services(request).matches.reject(match.id)
    return web.json_response(match.to_dict())


# -- Messages ------------------------------------------------------------------


@routes.get("/conversations")
async def conversations(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    recent = await services(request).messages.recent_conversations(session.user_id)
    return web.json_response([c.to_dict() for c in recent])


@routes.get("/messages/unread")
async def unread_messages(request: web.Request) -> web.Response:
    session = await require_screen(request, MATCHES_PATH)
    count = await services(request).messages.unread_count(session.user_id)
    return web.json_response({"unread": count})


@routes.get("/messages/{user_id}")
async def message_thread(request: web.Request) -> web.Response:
    other_id = request.match_info["user_id"]
    session = await require_screen(request, _chat_path(other_id))
    svc = services(request)
    other = await svc.profiles.require(other_id)
    messages = await svc.messages.thread(session.user_id, other_id)
    return web.json_response({
        "user": other.public_dict(),
        "messages": [m.to_dict() for m in messages],
    })


@routes.post("/messages/{user_id}")
async def send_message(request: web.Request) -> web.Response:
    other_id = request.match_info["user_id"]
    session = await require_screen(request, _chat_path(other_id))
    payload = await read_json(request)
    svc = services(request)
    await svc.profiles.require(other_id)
    message = await svc.messages.send(session.user_id, other_id, str(payload.get("content", "")))
    return web.json_response(message.to_dict(), status=201)


# -- Memory tree ---------------------------------------------------------------


@routes.get("/memory-tree/{user_id}")
async def memory_tree(request: web.Request) -> web.Response:
    other_id = request.match_info["user_id"]
    session = await require_screen(request, _memory_tree_path(other_id))
    svc = services(request)
    await svc.profiles.require(other_id)
    tree = await svc.memory_trees.get_or_create(session.user_id, other_id)
    return web.json_response(tree.to_dict())


async def _own_tree(request: web.Request, tree_id: str, user_id: str):
    tree = await services(request).memory_trees.get_tree_by_id(tree_id)
    if not tree.involves(user_id):
        raise NotFoundError("Memory tree", tree_id)
    return tree


@routes.post("/memory-tree/{tree_id}/branches")
async def add_branch(request: web.Request) -> web.Response:
    tree_id = request.match_info["tree_id"]
    session = await require_screen(request, _memory_tree_path(tree_id))
    await _own_tree(request, tree_id, session.user_id)
    payload = await read_json(request)
    (name,) = require_fields(payload, "name")
    branch = await services(request).memory_trees.add_branch(tree_id, str(name))
    return web.json_response(branch.to_dict(), status=201)


@routes.post("/memory-tree/branches/{branch_id}/memories")
async def add_memory(request: web.Request) -> web.Response:
    branch_id = request.match_info["branch_id"]
    session = await require_screen(request, _memory_tree_path(branch_id))
    svc = services(request)
    branch = await svc.memory_trees.get_branch(branch_id)
    await _own_tree(request, branch.memory_tree_id, session.user_id)

    image: tuple[str, bytes] | None = None
    if request.content_type.startswith("multipart/"):
        filename, data, fields = await _read_file_part(request, field="image")
        if data:
            image = (filename, data)
        payload: dict[str, Any] = fields
    else:
        payload = await read_json(request)

    memory = await svc.memory_trees.add_memory(
        branch_id,
        session.user_id,
        str(payload.get("title", "")),
        str(payload.get("description", "")),
        image=image,
    )
    return web.json_response(memory.to_dict(), status=201)


# -- Events --------------------------------------------------------------------


@routes.get("/events")
async def list_events(request: web.Request) -> web.Response:
    session = await current_session(request)
    svc = services(request)
    created = await svc.events.list_created(session.user_id)
    attending = await svc.events.list_attending(session.user_id)
    return web.json_response({
        "created": [e.to_dict() for e in created],
        "attending": [e.to_dict() for e in attending],
    })


@routes.post("/events")
async def create_event(request: web.Request) -> web.Response:
    session = await current_session(request)
    payload = await read_json(request)
    title, raw_date = require_fields(payload, "title", "eventDate")
    try:
        event_date = datetime.fromisoformat(str(raw_date))
    except ValueError as exc:
        raise ValidationError("eventDate must be an ISO 8601 date-time") from exc
    event = await services(request).events.create_event(
        session.user_id,
        str(title),
        event_date,
        description=str(payload.get("description", "")),
        location=str(payload.get("location", "")),
    )
    return web.json_response(event.to_dict(), status=201)


@routes.post("/events/{event_id}/invitations")
async def invite(request: web.Request) -> web.Response:
    session = await current_session(request)
    svc = services(request)
    event = await svc.events.get_event(request.match_info["event_id"])
    if event.creator_id != session.user_id:
        raise ForbiddenError("Only the event's creator can invite people")
    payload = await read_json(request)
    (user_id,) = require_fields(payload, "userId")
    await svc.profiles.require(user_id)
    invitation = await svc.events.invite(event.id, user_id)
    return web.json_response(invitation.to_dict(), status=201)


@routes.get("/invitations")
async def pending_invitations(request: web.Request) -> web.Response:
    session = await current_session(request)
    invitations = await services(request).events.pending_invitations(session.user_id)
    return web.json_response([i.to_dict() for i in invitations])


@routes.post("/invitations/{invitation_id}")
async def respond_to_invitation(request: web.Request) -> web.Response:
    session = await current_session(request)
    svc = services(request)
    invitation_id = request.match_info["invitation_id"]
    invitation = await svc.events.get_invitation(invitation_id)
    if invitation.user_id != session.user_id:
        raise NotFoundError("Invitation", invitation_id)
    payload = await read_json(request)
    (status,) = require_fields(payload, "status")
    invitation = await svc.events.respond(invitation_id, str(status))
    return web.json_response(invitation.to_dict())


# -- AI functions --------------------------------------------------------------


@routes.post("/functions/{name}")
async def invoke_function(request: web.Request) -> web.Response:
    session = await current_session(request)
    name = request.match_info["name"]
    payload = await read_json(request)
    logger.info("AI function %s called by %s", name, session.user_id)
    result = await function_registry.invoke(
        name, payload, services(request), caller=session.user_id
    )
    return web.json_response(result)


# -- Notifications and storage -------------------------------------------------


@routes.get("/notifications")
async def drain_notifications(request: web.Request) -> web.Response:
    """Hand the caller their pending toasts."""
    session = await current_session(request)
    toasts = services(request).toasts.drain(session.user_id)
    return web.json_response([t.to_dict() for t in toasts])


@routes.get("/storage/{bucket}/{path:.+}")
async def serve_blob(request: web.Request) -> web.Response:
    bucket = request.match_info["bucket"]
    path = request.match_info["path"]
    try:
        data = services(request).blobs.read(bucket, path)
    except (FileNotFoundError, ValueError) as exc:
        raise NotFoundError("File", f"{bucket}/{path}") from exc
    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return web.Response(body=data, content_type=content_type)
