"""SQLite-backed playlist store — the authoritative copy of songs and playlists.

Implements ``core.service.PlaylistService`` on top of the shared aiosqlite
connection.  Playlist membership keeps an explicit, gap-free ``position``
per playlist so that inserts at an index and full reorders map to plain
UPDATEs.
"""

from __future__ import annotations

import logging
import uuid
from typing import List

import aiosqlite

from core.errors import StoreError
from core.models import PlaylistSummary, Song

logger = logging.getLogger(__name__)

_SONG_COLUMNS = "s.id, s.title, s.artist, s.year, s.youtube_id, s.owner_username, s.owner_email"


def _new_id() -> str:
    return uuid.uuid4().hex


def _row_to_song(row: aiosqlite.Row) -> Song:
    return Song(
        id=row["id"],
        title=row["title"],
        artist=row["artist"],
        year=row["year"],
        youtube_id=row["youtube_id"],
        owner_username=row["owner_username"],
        owner_email=row["owner_email"],
    )


class LocalStore:
    """Playlist store operating directly on the application database."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _require_playlist(self, playlist_id: str) -> aiosqlite.Row:
        cur = await self.db.execute(
            "SELECT id, name, owner_email FROM playlists WHERE id = ?", (playlist_id,)
        )
        row = await cur.fetchone()
        if row is None:
            raise StoreError(404, f"Playlist {playlist_id} not found")
        return row

    async def get_song(self, song_id: str) -> Song:
        cur = await self.db.execute(
            f"SELECT {_SONG_COLUMNS} FROM songs s WHERE s.id = ?", (song_id,)
        )
        row = await cur.fetchone()
        if row is None:
            raise StoreError(404, f"Song {song_id} not found")
        return _row_to_song(row)

    async def _position_of(self, playlist_id: str, song_id: str) -> int | None:
        cur = await self.db.execute(
            "SELECT position FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
            (playlist_id, song_id),
        )
        row = await cur.fetchone()
        return None if row is None else row["position"]

    async def _touch(self, playlist_id: str) -> None:
        await self.db.execute(
            "UPDATE playlists SET updated_at = datetime('now') WHERE id = ?", (playlist_id,)
        )

    # ------------------------------------------------------------------
    # Songs
    # ------------------------------------------------------------------

    async def create_song(
        self,
        title: str,
        artist: str,
        year: int,
        youtube_id: str,
        owner_username: str,
        owner_email: str,
    ) -> Song:
        song = Song(
            id=_new_id(),
            title=title,
            artist=artist,
            year=year,
            youtube_id=youtube_id,
            owner_username=owner_username,
            owner_email=owner_email,
        )
        await self.db.execute(
            """INSERT INTO songs (id, title, artist, year, youtube_id, owner_username, owner_email)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (song.id, title, artist, year, youtube_id, owner_username, owner_email),
        )
        await self.db.commit()
        return song

    async def copy_song(self, song_id: str, acting_username: str, acting_email: str) -> str:
        original = await self.get_song(song_id)
        copy = original.copied_for(_new_id(), acting_username, acting_email)
        await self.db.execute(
            """INSERT INTO songs (id, title, artist, year, youtube_id, owner_username, owner_email)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                copy.id,
                copy.title,
                copy.artist,
                copy.year,
                copy.youtube_id,
                copy.owner_username,
                copy.owner_email,
            ),
        )
        await self.db.commit()
        logger.info("Copied song %s → %s for %s", song_id, copy.id, acting_email)
        return copy.id

    async def delete_song(self, song_id: str) -> None:
        """Delete a song and take it out of every playlist that holds it."""
        await self.get_song(song_id)
        cur = await self.db.execute(
            "SELECT playlist_id, position FROM playlist_songs WHERE song_id = ?", (song_id,)
        )
        for row in await cur.fetchall():
            await self._detach(row["playlist_id"], song_id, row["position"])
        await self.db.execute("DELETE FROM songs WHERE id = ?", (song_id,))
        await self.db.commit()
        logger.info("Deleted song %s", song_id)

    async def count_songs(self) -> int:
        cur = await self.db.execute("SELECT COUNT(*) FROM songs")
        row = await cur.fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Playlists
    # ------------------------------------------------------------------

    async def create_playlist(
        self,
        name: str,
        owner_username: str,
        owner_email: str,
        song_ids: List[str] | None = None,
    ) -> PlaylistSummary:
        playlist = PlaylistSummary(id=_new_id(), name=name, owner_email=owner_email)
        await self.db.execute(
            "INSERT INTO playlists (id, name, owner_username, owner_email) VALUES (?, ?, ?, ?)",
            (playlist.id, name, owner_username, owner_email),
        )
        await self.db.commit()
        for song_id in song_ids or []:
            await self.add_song_to_playlist(playlist.id, song_id)
        return playlist

    async def get_playlist(self, playlist_id: str) -> PlaylistSummary:
        row = await self._require_playlist(playlist_id)
        return PlaylistSummary(id=row["id"], name=row["name"], owner_email=row["owner_email"])

    async def rename_playlist(self, playlist_id: str, new_name: str) -> None:
        await self._require_playlist(playlist_id)
        if not new_name.strip():
            raise StoreError(400, "Playlist name cannot be empty")
        await self.db.execute(
            "UPDATE playlists SET name = ?, updated_at = datetime('now') WHERE id = ?",
            (new_name, playlist_id),
        )
        await self.db.commit()

    async def list_playlists_owned_by(self, user_email: str) -> List[PlaylistSummary]:
        cur = await self.db.execute(
            "SELECT id, name, owner_email FROM playlists WHERE owner_email = ? ORDER BY name",
            (user_email,),
        )
        return [
            PlaylistSummary(id=row["id"], name=row["name"], owner_email=row["owner_email"])
            for row in await cur.fetchall()
        ]

    # ------------------------------------------------------------------
    # Playlist contents
    # ------------------------------------------------------------------

    async def get_songs_of_playlist(self, playlist_id: str) -> List[Song]:
        await self._require_playlist(playlist_id)
        cur = await self.db.execute(
            f"""SELECT {_SONG_COLUMNS}
                FROM playlist_songs ps JOIN songs s ON s.id = ps.song_id
                WHERE ps.playlist_id = ?
                ORDER BY ps.position""",
            (playlist_id,),
        )
        return [_row_to_song(row) for row in await cur.fetchall()]

    async def add_song_to_playlist(self, playlist_id: str, song_id: str, index: int = -1) -> None:
        await self._require_playlist(playlist_id)
        await self.get_song(song_id)
        if await self._position_of(playlist_id, song_id) is not None:
            raise StoreError(409, f"Song {song_id} is already in playlist {playlist_id}")

        cur = await self.db.execute(
            "SELECT COUNT(*) FROM playlist_songs WHERE playlist_id = ?", (playlist_id,)
        )
        count = (await cur.fetchone())[0]
        if index < 0 or index >= count:
            position = count
        else:
            position = index
            await self.db.execute(
                """UPDATE playlist_songs SET position = position + 1
                   WHERE playlist_id = ? AND position >= ?""",
                (playlist_id, position),
            )

        await self.db.execute(
            "INSERT INTO playlist_songs (playlist_id, song_id, position) VALUES (?, ?, ?)",
            (playlist_id, song_id, position),
        )
        await self.db.execute(
            "UPDATE songs SET num_playlists = num_playlists + 1 WHERE id = ?", (song_id,)
        )
        await self._touch(playlist_id)
        await self.db.commit()

    async def _detach(self, playlist_id: str, song_id: str, position: int) -> None:
        await self.db.execute(
            "DELETE FROM playlist_songs WHERE playlist_id = ? AND song_id = ?",
            (playlist_id, song_id),
        )
        await self.db.execute(
            """UPDATE playlist_songs SET position = position - 1
               WHERE playlist_id = ? AND position > ?""",
            (playlist_id, position),
        )
        await self.db.execute(
            "UPDATE songs SET num_playlists = MAX(num_playlists - 1, 0) WHERE id = ?", (song_id,)
        )
        await self._touch(playlist_id)

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> None:
        await self._require_playlist(playlist_id)
        position = await self._position_of(playlist_id, song_id)
        if position is None:
            raise StoreError(404, f"Song {song_id} is not in playlist {playlist_id}")
        await self._detach(playlist_id, song_id, position)
        await self.db.commit()

    async def update_playlist_order(self, playlist_id: str, ordered_song_ids: List[str]) -> None:
        await self._require_playlist(playlist_id)
        cur = await self.db.execute(
            "SELECT song_id FROM playlist_songs WHERE playlist_id = ?", (playlist_id,)
        )
        current = {row["song_id"] for row in await cur.fetchall()}
        if len(ordered_song_ids) != len(current) or set(ordered_song_ids) != current:
            raise StoreError(400, "New order must contain exactly the playlist's current songs")

        await self.db.executemany(
            "UPDATE playlist_songs SET position = ? WHERE playlist_id = ? AND song_id = ?",
            [(i, playlist_id, song_id) for i, song_id in enumerate(ordered_song_ids)],
        )
        await self._touch(playlist_id)
        await self.db.commit()
