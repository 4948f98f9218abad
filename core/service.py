"""Contract of the playlist persistence service used by the editor.

Implemented by ``app.store.LocalStore`` (SQLite) and
``app.store_client.StoreClient`` (HTTP).  Every failure is reported as
``core.errors.StoreError``.
"""

from __future__ import annotations

from typing import List, Protocol

from core.models import PlaylistSummary, Song


class PlaylistService(Protocol):
    async def get_songs_of_playlist(self, playlist_id: str) -> List[Song]: ...

    async def add_song_to_playlist(self, playlist_id: str, song_id: str, index: int = -1) -> None:
        """Insert *song_id* at *index*; ``-1`` appends."""
        ...

    async def remove_song_from_playlist(self, playlist_id: str, song_id: str) -> None: ...

    async def update_playlist_order(self, playlist_id: str, ordered_song_ids: List[str]) -> None: ...

    async def copy_song(self, song_id: str, acting_username: str, acting_email: str) -> str:
        """Persist a copy of *song_id* owned by the acting user; return its id."""
        ...

    async def delete_song(self, song_id: str) -> None: ...

    async def get_playlist(self, playlist_id: str) -> PlaylistSummary: ...

    async def rename_playlist(self, playlist_id: str, new_name: str) -> None: ...

    async def list_playlists_owned_by(self, user_email: str) -> List[PlaylistSummary]: ...
