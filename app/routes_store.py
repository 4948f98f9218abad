"""Store routes: the REST surface of the playlist persistence service.

Every handler delegates to ``LocalStore`` and turns ``StoreError`` into an
``HTTPException`` carrying the same status code.
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.db import get_db
from app.store import LocalStore
from core.errors import StoreError

router = APIRouter(prefix="/store", tags=["store"])


def _store() -> LocalStore:
    return LocalStore(get_db())


def _http_error(exc: StoreError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=exc.detail)


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class SongCreate(BaseModel):
    title: str
    artist: str
    year: int
    youtube_id: str = ""
    owner_username: str = ""
    owner_email: str


class SongCopy(BaseModel):
    owner_username: str
    owner_email: str


class PlaylistCreate(BaseModel):
    name: str
    owner_username: str = ""
    owner_email: str
    song_ids: List[str] = Field(default_factory=list)


class PlaylistRename(BaseModel):
    name: str


class AddSong(BaseModel):
    song_id: str
    index: int = -1


class PlaylistOrder(BaseModel):
    song_ids: List[str]


# ---------------------------------------------------------------------------
# Songs
# ---------------------------------------------------------------------------

@router.post("/song", status_code=201)
async def create_song(body: SongCreate):
    song = await _store().create_song(
        body.title, body.artist, body.year, body.youtube_id, body.owner_username, body.owner_email
    )
    return JSONResponse({"song": song.model_dump()}, status_code=201)


@router.post("/song/{song_id}/copy", status_code=201)
async def copy_song(song_id: str, body: SongCopy):
    """Create a copy of a song owned by the caller."""
    store = _store()
    try:
        new_id = await store.copy_song(song_id, body.owner_username, body.owner_email)
        song = await store.get_song(new_id)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"song": song.model_dump()}, status_code=201)


@router.delete("/song/{song_id}")
async def delete_song(song_id: str):
    try:
        await _store().delete_song(song_id)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"success": True})


# ---------------------------------------------------------------------------
# Playlists
# ---------------------------------------------------------------------------

@router.post("/playlist", status_code=201)
async def create_playlist(body: PlaylistCreate):
    try:
        playlist = await _store().create_playlist(
            body.name, body.owner_username, body.owner_email, body.song_ids
        )
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"playlist": playlist.model_dump()}, status_code=201)


@router.get("/playlist/{playlist_id}")
async def get_playlist(playlist_id: str):
    try:
        playlist = await _store().get_playlist(playlist_id)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"playlist": playlist.model_dump()})


@router.put("/playlist/{playlist_id}")
async def rename_playlist(playlist_id: str, body: PlaylistRename):
    try:
        await _store().rename_playlist(playlist_id, body.name)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"success": True, "id": playlist_id})


@router.get("/playlists")
async def list_playlists(owner_email: str = Query(..., alias="ownerEmail")):
    """Id/name pairs of every playlist the given user owns."""
    playlists = await _store().list_playlists_owned_by(owner_email)
    return JSONResponse({"playlists": [p.model_dump() for p in playlists]})


# ---------------------------------------------------------------------------
# Playlist contents
# ---------------------------------------------------------------------------

@router.get("/playlist/{playlist_id}/songs")
async def get_songs_of_playlist(playlist_id: str):
    try:
        songs = await _store().get_songs_of_playlist(playlist_id)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"songs": [s.model_dump() for s in songs]})


@router.put("/playlist/{playlist_id}/add-song")
async def add_song_to_playlist(playlist_id: str, body: AddSong):
    try:
        await _store().add_song_to_playlist(playlist_id, body.song_id, body.index)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"success": True})


@router.delete("/playlist/{playlist_id}/song/{song_id}")
async def remove_song_from_playlist(playlist_id: str, song_id: str):
    try:
        await _store().remove_song_from_playlist(playlist_id, song_id)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"success": True})


@router.put("/playlist/{playlist_id}/order")
async def update_playlist_order(playlist_id: str, body: PlaylistOrder):
    try:
        await _store().update_playlist_order(playlist_id, body.song_ids)
    except StoreError as exc:
        raise _http_error(exc) from exc
    return JSONResponse({"success": True})
