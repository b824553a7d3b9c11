"""
Music library domain models.

Contains data structures for analysed tracks and the player's queue.
"""

from typing import NamedTuple, Optional, Tuple

import numpy as np


class Track(NamedTuple):
    """An analysed track.

    The path is relative to the player's music directory, so it doubles as
    the reference used when pushing the track onto the player's queue.
    """
    path: str
    features: Tuple[float, ...] = ()  # analysis feature vector
    genre: Optional[str] = None  # comma-separated genre tags
    title: Optional[str] = None
    artist: Optional[str] = None

    def vector(self) -> np.ndarray:
        """Feature vector as a float32 array."""
        return np.asarray(self.features, dtype=np.float32)


class QueueEntry(NamedTuple):
    """A song as the player reports it, with its place in the queue."""
    file: str
    pos: Optional[int] = None
    id: Optional[int] = None  # player-assigned, not stable across edits
    title: Optional[str] = None
    artist: Optional[str] = None

    def label(self) -> str:
        """Human readable name for log messages."""
        if self.title and self.artist:
            return f"{self.artist} - {self.title}"
        return self.title or self.file


class PlayerStatus(NamedTuple):
    """Snapshot of the player's status block."""
    state: str = "stop"  # 'play', 'pause' or 'stop'
    song_pos: Optional[int] = None
    song_id: Optional[int] = None
    queue_length: int = 0
