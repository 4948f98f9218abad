"""Shared test doubles.

``FakeStore`` is an in-memory ``PlaylistService``.  Any operation can be
made to fail once via ``fail_next[<method name>] = StoreError(...)`` and
any operation can be held open with ``hold(<method name>)``.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Dict, List

import pytest

from core.errors import StoreError
from core.models import PlaylistSummary, Song


class FakeStore:
    def __init__(self) -> None:
        self.songs: Dict[str, Song] = {}
        self.playlists: Dict[str, PlaylistSummary] = {}
        self.contents: Dict[str, List[str]] = {}
        self.calls: List[tuple] = []
        self.fail_next: Dict[str, Exception] = {}
        self.gates: Dict[str, asyncio.Event] = {}
        self._ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------

    def add_song(self, song_id: str, title: str = "", owner_email: str = "owner@example.com") -> Song:
        song = Song(
            id=song_id,
            title=title or song_id,
            artist="Artist",
            year=2000,
            owner_username="owner",
            owner_email=owner_email,
        )
        self.songs[song_id] = song
        return song

    def add_playlist(self, playlist_id: str, name: str, owner_email: str, song_ids: List[str]) -> None:
        self.playlists[playlist_id] = PlaylistSummary(id=playlist_id, name=name, owner_email=owner_email)
        self.contents[playlist_id] = list(song_ids)

    def hold(self, method: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[method] = gate
        return gate

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        exc = self.fail_next.pop(method, None)
        if exc is not None:
            raise exc

    def ids(self, playlist_id: str) -> List[str]:
        return list(self.contents[playlist_id])

    def writes(self) -> List[tuple]:
        reads = {"get_songs_of_playlist", "get_playlist", "list_playlists_owned_by"}
        return [c for c in self.calls if c[0] not in reads]

    # -- PlaylistService -------------------------------------------------

    async def get_songs_of_playlist(self, playlist_id: str) -> List[Song]:
        await self._enter("get_songs_of_playlist", playlist_id)
        return [self.songs[s] for s in self.contents[playlist_id]]

    async def add_song_to_playlist(self, playlist_id: str, song_id: str, index: int = -1) -> None:
        await self._enter("add_song_to_playlist", playlist_id, song_id, index)
        ids = self.contents[playlist_id]
        if index < 0 or index >= len(ids):
            ids.append(song_id)
        else:
            ids.insert(index, song_id)

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> None:
        await self._enter("remove_song_from_playlist", playlist_id, song_id)
        self.contents[playlist_id].remove(song_id)

    async def update_playlist_order(self, playlist_id: str, ordered_song_ids: List[str]) -> None:
        await self._enter("update_playlist_order", playlist_id, list(ordered_song_ids))
        self.contents[playlist_id] = list(ordered_song_ids)

    async def copy_song(self, song_id: str, acting_username: str, acting_email: str) -> str:
        await self._enter("copy_song", song_id, acting_username, acting_email)
        new_id = f"{song_id}-copy{next(self._ids)}"
        self.songs[new_id] = self.songs[song_id].copied_for(new_id, acting_username, acting_email)
        return new_id

    async def delete_song(self, song_id: str) -> None:
        await self._enter("delete_song", song_id)
        if song_id not in self.songs:
            raise StoreError(404, f"Song {song_id} not found")
        del self.songs[song_id]
        for ids in self.contents.values():
            while song_id in ids:
                ids.remove(song_id)

    async def get_playlist(self, playlist_id: str) -> PlaylistSummary:
        await self._enter("get_playlist", playlist_id)
        if playlist_id not in self.playlists:
            raise StoreError(404, f"Playlist {playlist_id} not found")
        return self.playlists[playlist_id]

    async def rename_playlist(self, playlist_id: str, new_name: str) -> None:
        await self._enter("rename_playlist", playlist_id, new_name)
        self.playlists[playlist_id] = self.playlists[playlist_id].model_copy(update={"name": new_name})

    async def list_playlists_owned_by(self, user_email: str) -> List[PlaylistSummary]:
        await self._enter("list_playlists_owned_by", user_email)
        return [p for p in self.playlists.values() if p.owner_email == user_email]


@pytest.fixture
def store() -> FakeStore:
    """Playlist ``pl1`` owned by alice holding ``[S1, S2, S3]``."""
    fake = FakeStore()
    for sid in ("S1", "S2", "S3"):
        fake.add_song(sid)
    fake.add_playlist("pl1", "Road Trip", "alice@example.com", ["S1", "S2", "S3"])
    return fake
