"""Exceptions shared by the editor core and the store implementations."""

from __future__ import annotations


class StoreError(Exception):
    """Raised when the playlist store rejects or fails a request."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Store error {status_code}: {detail}")


# ---------------------------------------------------------------------------
# Editor errors
# ---------------------------------------------------------------------------

class EditorError(Exception):
    """Base class for errors raised by the editor before touching the store."""


class InvalidIndexError(EditorError, IndexError):
    """A gesture referenced a position outside the playlist."""


class PlaylistNameError(EditorError, ValueError):
    """The requested playlist name is empty or already used by the owner."""


class EditorBusyError(EditorError):
    """Another history-mutating step is still in flight."""


class PlaylistNotOpenError(EditorError):
    """A gesture arrived before any playlist was opened."""


class PlaylistNameTakenError(PlaylistNameError):
    """The owner already has another playlist with this name."""
