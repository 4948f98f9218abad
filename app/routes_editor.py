"""Playlist editor routes: gestures, undo/redo, and renames as a JSON API.

Each user (keyed by the email in the session cookie) has at most one
in-memory ``EditorController``.  Undo history lives only as long as that
editor; it is never persisted, and editors left idle past
``editor_idle_seconds`` are dropped.
"""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.config import get_settings
from app.db import get_db
from app.store import LocalStore
from app.store_client import StoreClient
from core.editor import EditorController
from core.errors import (
    EditorBusyError,
    InvalidIndexError,
    PlaylistNameError,
    PlaylistNameTakenError,
    PlaylistNotOpenError,
    StoreError,
)
from core.models import ActingUser
from core.service import PlaylistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/editor", tags=["editor"])

# Key: user email → EditorController
_editors: dict[str, EditorController] = {}
# Key: user email → time of last request
_last_seen: dict[str, float] = {}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_user(request: Request) -> ActingUser:
    """Read the acting user from the session or raise 401."""
    email = request.session.get("user_email")
    if not email:
        raise HTTPException(status_code=401, detail="No identity; POST /editor/identity first")
    return ActingUser(username=request.session.get("username", ""), email=email)


def _service() -> PlaylistService:
    settings = get_settings()
    if settings.store_base_url:
        return StoreClient(settings.store_base_url)
    return LocalStore(get_db())


def _evict_idle() -> None:
    """Drop editors nobody has used for ``editor_idle_seconds``."""
    cutoff = time.time() - get_settings().editor_idle_seconds
    for email, seen in list(_last_seen.items()):
        editor = _editors.get(email)
        if seen >= cutoff or (editor is not None and editor.busy):
            continue
        _last_seen.pop(email, None)
        if _editors.pop(email, None) is not None:
            editor.close()
            logger.info("Evicted idle editor for %s", email)


def _get_editor(user: ActingUser) -> EditorController:
    _evict_idle()
    editor = _editors.get(user.email)
    if editor is None:
        raise HTTPException(status_code=404, detail="No playlist open for editing")
    _last_seen[user.email] = time.time()
    return editor


def _to_http(exc: Exception) -> HTTPException:
    if isinstance(exc, PlaylistNotOpenError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidIndexError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (PlaylistNameTakenError, EditorBusyError)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, PlaylistNameError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, StoreError):
        status = exc.status_code if 400 <= exc.status_code < 500 else 502
        return HTTPException(status_code=status, detail=exc.detail)
    return HTTPException(status_code=500, detail=str(exc))


def _status(editor: EditorController) -> JSONResponse:
    return JSONResponse(editor.status().model_dump())


class IdentityRequest(BaseModel):
    username: str
    email: str


class OpenRequest(BaseModel):
    playlist_id: str


class MoveRequest(BaseModel):
    from_index: int
    to_index: int


class IndexRequest(BaseModel):
    index: int


class RenameRequest(BaseModel):
    name: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/identity")
async def identity(request: Request, body: IdentityRequest):
    """Record who is editing (login itself is handled elsewhere)."""
    request.session["user_email"] = body.email
    request.session["username"] = body.username
    return JSONResponse({"username": body.username, "email": body.email})


@router.post("/open")
async def open_playlist(request: Request, body: OpenRequest):
    """Open a playlist; switching to another playlist clears the history."""
    user = _get_user(request)
    _evict_idle()
    editor = _editors.get(user.email)
    if editor is None:
        editor = EditorController(_service(), user)
    try:
        await editor.open(body.playlist_id)
    except (EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    _editors[user.email] = editor
    _last_seen[user.email] = time.time()
    return _status(editor)


@router.get("/status")
async def status(request: Request):
    user = _get_user(request)
    return _status(_get_editor(user))


@router.post("/move")
async def move(request: Request, body: MoveRequest):
    """Drag-and-drop reorder."""
    editor = _get_editor(_get_user(request))
    try:
        await editor.move_song(body.from_index, body.to_index)
    except (InvalidIndexError, PlaylistNotOpenError, EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/remove")
async def remove(request: Request, body: IndexRequest):
    editor = _get_editor(_get_user(request))
    try:
        await editor.remove_song(body.index)
    except (InvalidIndexError, PlaylistNotOpenError, EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/duplicate")
async def duplicate(request: Request, body: IndexRequest):
    """Copy the song at ``index`` for the current user, right after the original."""
    editor = _get_editor(_get_user(request))
    try:
        await editor.duplicate_song(body.index)
    except (InvalidIndexError, PlaylistNotOpenError, EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/undo")
async def undo(request: Request):
    editor = _get_editor(_get_user(request))
    try:
        await editor.undo()
    except (EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/redo")
async def redo(request: Request):
    editor = _get_editor(_get_user(request))
    try:
        await editor.redo()
    except (EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/rename")
async def rename(request: Request, body: RenameRequest):
    """Commit a new name (blur/Enter).  Not part of the undo history."""
    editor = _get_editor(_get_user(request))
    try:
        await editor.rename(body.name)
    except (PlaylistNameError, PlaylistNotOpenError, EditorBusyError, StoreError) as exc:
        raise _to_http(exc) from exc
    return _status(editor)


@router.post("/close")
async def close(request: Request):
    user = _get_user(request)
    editor = _editors.pop(user.email, None)
    _last_seen.pop(user.email, None)
    if editor is not None:
        editor.close()
        logger.info("Closed editor for %s", user.email)
    return JSONResponse({"status": "closed"})
