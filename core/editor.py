"""Editor controller — turns user gestures into playlist transactions.

Drag-and-drop becomes a ``MoveSong``, a delete click a ``RemoveSong`` and a
duplicate click a ``DuplicateSong`` placed right after the original.  Renames
are checked against the owner's other playlists and written directly; they
are not undoable.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from core.errors import (
    EditorBusyError,
    InvalidIndexError,
    PlaylistNameError,
    PlaylistNameTakenError,
    PlaylistNotOpenError,
)
from core.models import ActingUser, EditorStatus, PlaylistSummary
from core.service import PlaylistService
from core.song_list import OrderedSongList
from core.transactions import (
    Command,
    DuplicateSong,
    MoveSong,
    RemoveSong,
    SongListOps,
    TransactionStack,
)

logger = logging.getLogger(__name__)


class EditorController:
    """Single mutator of one playlist's song list and its undo history."""

    def __init__(self, service: PlaylistService, user: ActingUser):
        self.service = service
        self.user = user
        self.stack = TransactionStack()
        self.playlist: Optional[PlaylistSummary] = None
        self.songs: Optional[OrderedSongList] = None
        self._busy = False

    @property
    def busy(self) -> bool:
        return self._busy

    @asynccontextmanager
    async def _step(self) -> AsyncIterator[None]:
        """Reject a gesture while another one is still awaiting the store."""
        if self._busy:
            raise EditorBusyError("Another edit is still in progress")
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    def _require_open(self) -> OrderedSongList:
        if self.songs is None or self.playlist is None:
            raise PlaylistNotOpenError("No playlist is open")
        return self.songs

    def _check_index(self, index: int) -> None:
        songs = self._require_open()
        if not 0 <= index < len(songs):
            raise InvalidIndexError(f"Position {index} is outside the playlist (0..{len(songs) - 1})")

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def open(self, playlist_id: str) -> None:
        """Load *playlist_id* for editing; switching playlists drops the history."""
        async with self._step():
            playlist = await self.service.get_playlist(playlist_id)
            if self.songs is not None and self.songs.playlist_id == playlist_id:
                # history commands are bound to this list; refresh it in place
                songs = self.songs
                await songs.load()
            else:
                songs = OrderedSongList(self.service, playlist_id)
                await songs.load()
                self.stack.clear()
            self.playlist = playlist
            self.songs = songs
        logger.info("Opened playlist %s (%d songs) for %s", playlist_id, len(songs), self.user.email)

    def close(self) -> None:
        self.stack.clear()
        self.playlist = None
        self.songs = None

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    async def _process(self, cmd: Command) -> None:
        async with self._step():
            await self.stack.process_transaction(cmd)

    async def move_song(self, from_index: int, to_index: int) -> bool:
        """Drag-and-drop.  Returns False when the drop changes nothing."""
        self._check_index(from_index)
        self._check_index(to_index)
        if from_index == to_index:
            return False
        songs = self._require_open()
        await self._process(MoveSong(SongListOps.for_list(songs), from_index, to_index))
        return True

    async def remove_song(self, index: int) -> None:
        self._check_index(index)
        songs = self._require_open()
        song = songs.songs[index]
        await self._process(RemoveSong(SongListOps.for_list(songs), song, index))

    async def duplicate_song(self, index: int) -> None:
        """Copy the song at *index* for the acting user and place it right after."""
        self._check_index(index)
        songs = self._require_open()
        original = songs.songs[index]
        await self._process(
            DuplicateSong(SongListOps.for_list(songs), original, index + 1, self.user)
        )

    async def undo(self) -> None:
        async with self._step():
            await self.stack.undo_transaction()

    async def redo(self) -> None:
        async with self._step():
            await self.stack.redo_transaction()

    # ------------------------------------------------------------------
    # Rename (not undoable)
    # ------------------------------------------------------------------

    async def rename(self, new_name: str) -> None:
        """Commit a new playlist name unless the owner already uses it elsewhere."""
        self._require_open()
        name = new_name.strip()
        if not name:
            raise PlaylistNameError("Playlist name cannot be empty")
        if name == self.playlist.name:
            return

        owner = self.playlist.owner_email or self.user.email
        async with self._step():
            others = await self.service.list_playlists_owned_by(owner)
            for other in others:
                if other.id != self.playlist.id and other.name.casefold() == name.casefold():
                    raise PlaylistNameTakenError(f"You already have a playlist named '{other.name}'")
            await self.service.rename_playlist(self.playlist.id, name)
        self.playlist = self.playlist.model_copy(update={"name": name})
        logger.info("Renamed playlist %s to %r", self.playlist.id, name)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def status(self) -> EditorStatus:
        if self.playlist is None or self.songs is None:
            return EditorStatus(busy=self._busy)
        return EditorStatus(
            playlist_id=self.playlist.id,
            playlist_name=self.playlist.name,
            songs=list(self.songs.songs),
            has_undo=self.stack.has_undo(),
            has_redo=self.stack.has_redo(),
            busy=self._busy,
        )
