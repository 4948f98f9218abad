"""Pydantic models shared across the application."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field


class Song(BaseModel):
    """A catalogue song as seen by a playlist."""

    id: str
    title: str = ""
    artist: str = ""
    year: int = 0
    youtube_id: str = ""
    owner_username: str = ""
    owner_email: str = ""

    model_config = {"frozen": True}

    def copied_for(self, new_id: str, username: str, email: str) -> "Song":
        """Return this song's metadata under a new id, owned by another user."""
        return self.model_copy(
            update={"id": new_id, "owner_username": username, "owner_email": email}
        )


class PlaylistSummary(BaseModel):
    """Id/name pair of a playlist plus its owner."""

    id: str
    name: str
    owner_email: str = ""


class ActingUser(BaseModel):
    """Identity the editor acts on behalf of (authentication lives elsewhere)."""

    username: str
    email: str


class EditorStatus(BaseModel):
    """Snapshot of an editing session for rendering."""

    playlist_id: str = ""
    playlist_name: str = ""
    songs: List[Song] = Field(default_factory=list)
    has_undo: bool = False
    has_redo: bool = False
    busy: bool = False
