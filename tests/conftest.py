"""Shared fixtures: a scripted in-memory player and small track libraries."""

import threading
from collections import deque
from typing import Callable, List, Optional, Sequence

import pytest

from pin_radio.core.errors import PlayerCommandError, PlayerConnectionError
from pin_radio.domain.library.models import PlayerStatus, QueueEntry, Track
from pin_radio.domain.playback.client import PLAYER, QUEUE


class FakePlayer:
    """In-memory player implementing the PlayerClient interface.

    Every mutation queues a notification. `wait()` hands out pending
    notifications first, then runs the next scripted action (which
    usually mutates the queue, as a listener would). When the script is
    empty, `wait()` raises PlayerConnectionError so runs always end.
    """

    def __init__(self, files: Sequence[str], current_pos: Optional[int] = 0, state: str = "play"):
        self.lock = threading.RLock()
        self._next_id = 1
        self.entries: List[tuple] = []
        for file in files:
            self._append(file)
        self.current_pos = current_pos if files else None
        self.state = state
        self.pending: List[str] = []
        self.script: deque = deque()
        self.pushed: List[str] = []
        self.fail_push = set()
        self.current_song_misses = 0
        self.status_pos_misses = 0
        self.commands: List[str] = []
        self.closed = False

    def _append(self, file: str) -> int:
        song_id = self._next_id
        self._next_id += 1
        self.entries.append((file, song_id))
        return song_id

    def _notify(self, subsystem: str = QUEUE) -> None:
        if subsystem not in self.pending:
            self.pending.append(subsystem)

    @property
    def files(self) -> List[str]:
        return [file for file, _ in self.entries]

    # PlayerClient interface

    def status(self) -> PlayerStatus:
        self.commands.append("status")
        pos = self.current_pos
        if self.status_pos_misses > 0:
            self.status_pos_misses -= 1
            pos = None
        song_id = self.entries[pos][1] if pos is not None and pos < len(self.entries) else None
        return PlayerStatus(
            state=self.state, song_pos=pos, song_id=song_id, queue_length=len(self.entries)
        )

    def current_song(self) -> Optional[QueueEntry]:
        self.commands.append("currentsong")
        if self.current_song_misses > 0:
            self.current_song_misses -= 1
            return None
        if self.current_pos is None or self.current_pos >= len(self.entries):
            return None
        file, song_id = self.entries[self.current_pos]
        return QueueEntry(file=file, pos=self.current_pos, id=song_id)

    def queue(self) -> List[QueueEntry]:
        self.commands.append("playlistinfo")
        return [
            QueueEntry(file=file, pos=pos, id=song_id)
            for pos, (file, song_id) in enumerate(self.entries)
        ]

    def delete(self, start: int, end: Optional[int] = None) -> None:
        self.commands.append(f"delete {start}:{'' if end is None else end}")
        end = len(self.entries) if end is None else end
        if end <= start:
            return
        del self.entries[start:end]
        if self.current_pos is not None:
            if start <= self.current_pos < end:
                self.current_pos = None
            elif self.current_pos >= end:
                self.current_pos -= end - start
        self._notify()

    def push(self, file: str) -> Optional[int]:
        self.commands.append(f"addid {file}")
        if file in self.fail_push:
            raise PlayerCommandError("No such song", f"addid {file}", code=50)
        self.pushed.append(file)
        song_id = self._append(file)
        self._notify()
        return song_id

    def play(self, pos: int) -> None:
        self.current_pos = pos
        self._notify(PLAYER)

    def wait(self, subsystems: Sequence[str]) -> List[str]:
        while True:
            if self.pending:
                changed = self.pending
                self.pending = []
                wanted = [s for s in changed if s in subsystems]
                if wanted:
                    return wanted
                continue
            if not self.script:
                raise PlayerConnectionError("Connection closed by MPD", "idle")
            action = self.script.popleft()
            action(self)

    def close(self) -> None:
        self.closed = True

    # Scripted listener actions

    def then(self, *actions: Callable[["FakePlayer"], None]) -> "FakePlayer":
        self.script.extend(actions)
        return self


def user_adds(file: str) -> Callable[[FakePlayer], None]:
    """Listener appends a song to the end of the queue."""

    def action(player: FakePlayer) -> None:
        player._append(file)
        player._notify()

    return action


def user_plays(file: str) -> Callable[[FakePlayer], None]:
    """Listener adds a song and jumps straight to it."""

    def action(player: FakePlayer) -> None:
        player._append(file)
        player.current_pos = len(player.entries) - 1
        player._notify()
        player._notify(PLAYER)

    return action


def user_reverses_queue() -> Callable[[FakePlayer], None]:
    """Listener reorders the queue without changing what's in it."""

    def action(player: FakePlayer) -> None:
        current = player.entries[player.current_pos] if player.current_pos is not None else None
        player.entries.reverse()
        if current is not None:
            player.current_pos = player.entries.index(current)
        player._notify()

    return action


def user_replaces(pos: int, file: str) -> Callable[[FakePlayer], None]:
    """Listener swaps one queued song for another (same length)."""

    def action(player: FakePlayer) -> None:
        player.entries[pos] = (file, player._next_id)
        player._next_id += 1
        player._notify()

    return action


def song_finishes() -> Callable[[FakePlayer], None]:
    """Current song ends with consume mode on: it leaves the queue."""

    def action(player: FakePlayer) -> None:
        del player.entries[player.current_pos]
        if player.current_pos >= len(player.entries):
            player.current_pos = None
            player.state = "stop"
        player._notify()
        player._notify(PLAYER)

    return action


def make_track(path: str, *features: float, genre: str = None, title: str = None, artist: str = None) -> Track:
    return Track(path=path, features=tuple(features), genre=genre, title=title, artist=artist)


@pytest.fixture
def line_library() -> List[Track]:
    """Five tracks with one-dimensional features at 0, 1, 2, 3 and 4."""
    return [make_track(f"track{i}.flac", float(i)) for i in range(5)]


@pytest.fixture
def genre_table():
    import numpy as np

    return {
        "rock": np.array([1.0, 0.0, 0.5, 0.0, 0.0], dtype=np.float32),
        "jazz": np.array([0.0, 1.0, 0.25, 0.5, 1.0], dtype=np.float32),
        "techno": np.array([0.0, 0.0, 1.0, 0.0, 0.75], dtype=np.float32),
    }
