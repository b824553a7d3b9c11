"""Library domain - analysed tracks and queue entries."""

from .models import PlayerStatus, QueueEntry, Track

__all__ = [
    "PlayerStatus",
    "QueueEntry",
    "Track",
]
