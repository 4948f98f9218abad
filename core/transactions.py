"""Playlist edit transactions — reversible commands and the undo/redo stack.

Provides:
- ``SongListOps``: the capabilities a command may use
- ``MoveSong`` / ``RemoveSong`` / ``DuplicateSong``: the closed set of commands
- ``do_step`` / ``undo_step``: exhaustive dispatch over that set
- ``TransactionStack``: linear history with a cursor
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from core.errors import StoreError
from core.models import ActingUser, Song
from core.song_list import OrderedSongList

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SongListOps:
    """Everything a command is allowed to do, handed over at construction."""

    move_at: Callable[[int, int], Awaitable[None]]
    remove_at: Callable[[int], Awaitable[Song]]
    insert_at: Callable[[Song, int], Awaitable[None]]
    copy_song: Callable[[str, str, str], Awaitable[str]]
    delete_song: Callable[[str], Awaitable[None]]
    index_of: Callable[[str], int]

    @classmethod
    def for_list(cls, songs: OrderedSongList) -> "SongListOps":
        return cls(
            move_at=songs.move_at,
            remove_at=songs.remove_at,
            insert_at=songs.insert_at,
            copy_song=songs.service.copy_song,
            delete_song=songs.service.delete_song,
            index_of=songs.index_of,
        )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@dataclass
class MoveSong:
    ops: SongListOps
    old_index: int
    new_index: int

    def __post_init__(self) -> None:
        if self.old_index == self.new_index:
            raise ValueError("A move must change the song's position")

    async def do_step(self) -> None:
        await do_step(self)

    async def undo_step(self) -> None:
        await undo_step(self)


@dataclass
class RemoveSong:
    """Remove ``song`` from ``index``; undo puts it back where it was actually taken from."""

    ops: SongListOps
    song: Song
    index: int
    removed_index: Optional[int] = field(default=None)

    async def do_step(self) -> None:
        await do_step(self)

    async def undo_step(self) -> None:
        await undo_step(self)


@dataclass
class DuplicateSong:
    """Copy ``original`` into a new song owned by ``user`` at ``target_index``.

    ``last_created_id`` is the id produced by the most recent ``do_step``;
    every execution creates a new record, so redo never reuses it.
    """

    ops: SongListOps
    original: Song
    target_index: int
    user: ActingUser
    last_created_id: Optional[str] = field(default=None)

    async def do_step(self) -> None:
        await do_step(self)

    async def undo_step(self) -> None:
        await undo_step(self)


Command = Union[MoveSong, RemoveSong, DuplicateSong]


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

async def _remove_song(cmd: RemoveSong) -> None:
    index = cmd.index
    if cmd.ops.index_of(cmd.song.id) != index:
        # list was reloaded since the command was built
        index = cmd.ops.index_of(cmd.song.id)
        if index < 0:
            raise StoreError(404, f"Song {cmd.song.id} is no longer in the playlist")
    await cmd.ops.remove_at(index)
    cmd.removed_index = index


async def _duplicate_song(cmd: DuplicateSong) -> None:
    new_id = await cmd.ops.copy_song(cmd.original.id, cmd.user.username, cmd.user.email)
    cmd.last_created_id = new_id
    copy = cmd.original.copied_for(new_id, cmd.user.username, cmd.user.email)
    try:
        await cmd.ops.insert_at(copy, cmd.target_index)
    except StoreError:
        logger.warning(
            "Duplicate %s of song %s was created but could not be inserted — orphaned",
            new_id,
            cmd.original.id,
        )
        raise


async def _unduplicate_song(cmd: DuplicateSong) -> None:
    created = cmd.last_created_id
    if created is None:
        return
    position = cmd.ops.index_of(created)
    if position >= 0:
        await cmd.ops.remove_at(position)
    await cmd.ops.delete_song(created)
    cmd.last_created_id = None


async def do_step(cmd: Command) -> None:
    """Run the forward action of *cmd*."""
    if isinstance(cmd, MoveSong):
        await cmd.ops.move_at(cmd.old_index, cmd.new_index)
    elif isinstance(cmd, RemoveSong):
        await _remove_song(cmd)
    elif isinstance(cmd, DuplicateSong):
        await _duplicate_song(cmd)
    else:
        raise TypeError(f"Unknown command type: {type(cmd).__name__}")


async def undo_step(cmd: Command) -> None:
    """Run the inverse action of *cmd*."""
    if isinstance(cmd, MoveSong):
        await cmd.ops.move_at(cmd.new_index, cmd.old_index)
    elif isinstance(cmd, RemoveSong):
        index = cmd.index if cmd.removed_index is None else cmd.removed_index
        await cmd.ops.insert_at(cmd.song, index)
    elif isinstance(cmd, DuplicateSong):
        await _unduplicate_song(cmd)
    else:
        raise TypeError(f"Unknown command type: {type(cmd).__name__}")


# ---------------------------------------------------------------------------
# Transaction stack
# ---------------------------------------------------------------------------

class TransactionStack:
    """Linear undo/redo history.

    ``history[:cursor]`` are executed; ``history[cursor:]`` were undone and
    can be redone.  Pushing a new command drops everything past the cursor.
    Errors from a step always propagate; the cursor only moves after a step
    succeeds.
    """

    def __init__(self) -> None:
        self._history: List[Command] = []
        self._cursor = 0

    @property
    def history(self) -> List[Command]:
        return list(self._history)

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._history)

    def has_undo(self) -> bool:
        return self._cursor > 0

    def has_redo(self) -> bool:
        return self._cursor < len(self._history)

    async def process_transaction(self, cmd: Command) -> None:
        """Execute *cmd* and record it as the newest history entry."""
        del self._history[self._cursor:]
        self._history.append(cmd)
        try:
            await do_step(cmd)
        except Exception:
            self._history.pop()
            logger.info("%s failed, not recorded", type(cmd).__name__)
            raise
        self._cursor += 1
        logger.info("Processed %s (cursor %d/%d)", type(cmd).__name__, self._cursor, len(self._history))

    async def undo_transaction(self) -> None:
        if not self.has_undo():
            return
        cmd = self._history[self._cursor - 1]
        await undo_step(cmd)
        self._cursor -= 1
        logger.info("Undid %s (cursor %d/%d)", type(cmd).__name__, self._cursor, len(self._history))

    async def redo_transaction(self) -> None:
        if not self.has_redo():
            return
        cmd = self._history[self._cursor]
        await do_step(cmd)
        self._cursor += 1
        logger.info("Redid %s (cursor %d/%d)", type(cmd).__name__, self._cursor, len(self._history))

    def clear(self) -> None:
        self._history.clear()
        self._cursor = 0
