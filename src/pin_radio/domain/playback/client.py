"""
Player client interface.

The queue synchronizer only talks to the player through this narrow
surface, so anything that can report and edit a play queue and block on
change notifications can drive it.
"""

from typing import List, Optional, Protocol, Sequence

from pin_radio.domain.library.models import PlayerStatus, QueueEntry

# Notification subsystems
QUEUE = "playlist"
PLAYER = "player"


class PlayerClient(Protocol):
    """Stateful connection to a player.

    `lock` guards command sequences that must look atomic to the player.
    It is re-entrant, so single commands take it too.
    """

    lock: object

    def status(self) -> PlayerStatus: ...

    def current_song(self) -> Optional[QueueEntry]: ...

    def queue(self) -> List[QueueEntry]: ...

    def delete(self, start: int, end: Optional[int] = None) -> None: ...

    def push(self, file: str) -> Optional[int]: ...

    def play(self, pos: int) -> None: ...

    def wait(self, subsystems: Sequence[str]) -> List[str]: ...

    def close(self) -> None: ...
