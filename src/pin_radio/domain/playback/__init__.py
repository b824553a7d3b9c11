"""Playback domain - MPD integration.

This domain handles:
- The player client interface used by the queue synchronizer
- MPD protocol client over TCP, Unix and abstract sockets
"""

from .client import PLAYER, QUEUE, PlayerClient
from .mpd import MPDClient, connect, open_socket

__all__ = [
    "PLAYER",
    "QUEUE",
    "PlayerClient",
    "MPDClient",
    "connect",
    "open_socket",
]
