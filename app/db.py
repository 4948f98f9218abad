"""Async SQLite database layer.

Uses aiosqlite for non-blocking access.  Tables are created on first
startup via ``init_db()``.
"""

from __future__ import annotations

import aiosqlite

from app.config import get_settings

# Module-level connection (set during lifespan startup).
_db: aiosqlite.Connection | None = None

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS songs (
    id              TEXT    PRIMARY KEY,
    title           TEXT    NOT NULL,
    artist          TEXT    NOT NULL,
    year            INTEGER NOT NULL,
    youtube_id      TEXT    NOT NULL DEFAULT '',
    owner_username  TEXT    NOT NULL DEFAULT '',
    owner_email     TEXT    NOT NULL,
    num_playlists   INTEGER NOT NULL DEFAULT 0,
    created_at      TEXT    NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS playlists (
    id              TEXT    PRIMARY KEY,
    name            TEXT    NOT NULL,
    owner_username  TEXT    NOT NULL DEFAULT '',
    owner_email     TEXT    NOT NULL,
    created_at      TEXT    NOT NULL DEFAULT (datetime('now')),
    updated_at      TEXT    NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS playlist_songs (
    playlist_id     TEXT    NOT NULL REFERENCES playlists(id) ON DELETE CASCADE,
    song_id         TEXT    NOT NULL REFERENCES songs(id) ON DELETE CASCADE,
    position        INTEGER NOT NULL,
    PRIMARY KEY (playlist_id, song_id)              -- a song appears once per playlist
);

CREATE INDEX IF NOT EXISTS idx_playlists_owner
    ON playlists(owner_email);

CREATE INDEX IF NOT EXISTS idx_playlist_songs_order
    ON playlist_songs(playlist_id, position);
"""


# ---------------------------------------------------------------------------
# Lifecycle helpers
# ---------------------------------------------------------------------------

async def init_db() -> aiosqlite.Connection:
    """Open (or create) the SQLite database and ensure schema exists."""
    global _db  # noqa: PLW0603
    settings = get_settings()
    db_path = settings.db_abs_path

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # type: ignore[assignment]
    await _db.execute("PRAGMA foreign_keys = ON")
    await _db.executescript(_SCHEMA_SQL)
    await _db.commit()
    return _db


async def close_db() -> None:
    """Close the database connection."""
    global _db  # noqa: PLW0603
    if _db is not None:
        await _db.close()
        _db = None


def get_db() -> aiosqlite.Connection:
    """Return the current database connection (call after init)."""
    if _db is None:
        raise RuntimeError("Database not initialised — call init_db() first.")
    return _db
