"""Queue domain - keeps the player's queue following the pinned song."""

from .synchronizer import (
    QueueSynchronizer,
    SyncRun,
    SyncState,
    queue_changed_externally,
    queue_explained,
    same_songs,
)

__all__ = [
    "QueueSynchronizer",
    "SyncRun",
    "SyncState",
    "queue_changed_externally",
    "queue_explained",
    "same_songs",
]
