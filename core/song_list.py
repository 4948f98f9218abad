"""Ordered song list — the client-side mirror of one playlist.

Every mutation is applied locally first and then written to the store.
When the write fails the list is reloaded from the store (the store wins)
and the original error is re-raised.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from core.errors import StoreError
from core.models import Song
from core.service import PlaylistService

logger = logging.getLogger(__name__)


class OrderedSongList:
    """In-memory ordering of a playlist's songs."""

    def __init__(self, service: PlaylistService, playlist_id: str):
        self.service = service
        self.playlist_id = playlist_id
        self._songs: List[Song] = []

    @property
    def songs(self) -> Tuple[Song, ...]:
        return tuple(self._songs)

    def __len__(self) -> int:
        return len(self._songs)

    def index_of(self, song_id: str) -> int:
        """Position of *song_id*, or ``-1`` when it is not in the list."""
        for i, song in enumerate(self._songs):
            if song.id == song_id:
                return i
        return -1

    def _valid(self, index: int) -> bool:
        return 0 <= index < len(self._songs)

    # ------------------------------------------------------------------
    # Loading / reconciliation
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Replace local state with the store's current ordering."""
        self._songs = list(await self.service.get_songs_of_playlist(self.playlist_id))
        logger.debug("Loaded %d songs for playlist %s", len(self._songs), self.playlist_id)

    async def _resync(self, exc: Exception) -> None:
        logger.warning(
            "Store write failed for playlist %s (%s), reloading", self.playlist_id, exc
        )
        try:
            await self.load()
        except StoreError:
            logger.exception("Reload after failed write also failed for %s", self.playlist_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def move_at(self, from_index: int, to_index: int) -> None:
        """Move the song at *from_index* to *to_index*; invalid indices are a no-op."""
        if not (self._valid(from_index) and self._valid(to_index)):
            return
        song = self._songs.pop(from_index)
        self._songs.insert(to_index, song)
        try:
            await self.service.update_playlist_order(
                self.playlist_id, [s.id for s in self._songs]
            )
        except StoreError as exc:
            await self._resync(exc)
            raise

    async def insert_at(self, song: Song, index: int) -> None:
        """Insert *song* at *index*; ``-1`` or past-the-end appends."""
        if index < 0 or index >= len(self._songs):
            self._songs.append(song)
            remote_index = -1
        else:
            self._songs.insert(index, song)
            remote_index = index
        try:
            await self.service.add_song_to_playlist(self.playlist_id, song.id, remote_index)
        except StoreError as exc:
            await self._resync(exc)
            raise

    async def remove_at(self, index: int) -> Song:
        """Remove and return the song at *index*."""
        if not self._valid(index):
            raise IndexError(f"No song at position {index}")
        song = self._songs.pop(index)
        try:
            await self.service.remove_song_from_playlist(self.playlist_id, song.id)
        except StoreError as exc:
            await self._resync(exc)
            raise
        return song
