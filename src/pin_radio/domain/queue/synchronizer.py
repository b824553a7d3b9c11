"""
Queue synchronizer for a pinned song.

Keeps the player's queue topped up with songs similar to the pin and
watches queue notifications to notice when the listener takes over (skips
to something else, edits the queue). The player reports every queue
change the same way, including the ones we cause, so intent is recovered
by diffing snapshots: a change is ours when every song in the new queue
was either already queued or pushed by us during this run. Songs are
compared by file, never by the player's ids or positions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Set

from loguru import logger

from pin_radio.core.errors import (
    LibraryExhaustedError,
    PlayerCommandError,
    PlayerProtocolError,
)
from pin_radio.domain.library.models import QueueEntry, Track
from pin_radio.domain.playback.client import QUEUE, PlayerClient
from pin_radio.domain.similarity.metrics import DistanceMetricBuilder
from pin_radio.domain.similarity.ranking import RankingStrategy, SimilarityRanker


class SyncState(Enum):
    PRIMING = "priming"
    STREAMING = "streaming"
    TERMINATED = "terminated"


@dataclass
class SyncRun:
    """Run-local state for one pin. Never shared between runs."""

    pin: QueueEntry
    candidates: Iterator[Track]
    songs_added: Set[str] = field(default_factory=set)
    last_queue: List[QueueEntry] = field(default_factory=list)
    state: SyncState = SyncState.PRIMING


def queue_explained(
    last_queue: Sequence[QueueEntry],
    new_queue: Sequence[QueueEntry],
    songs_added: Set[str],
) -> bool:
    """True if every song in new_queue was queued before or added by us."""
    last_files = {song.file for song in last_queue}
    return all(
        song.file in last_files or song.file in songs_added for song in new_queue
    )


def same_songs(last_queue: Sequence[QueueEntry], new_queue: Sequence[QueueEntry]) -> bool:
    """True if both queues hold the same files, in any order."""
    return sorted(song.file for song in last_queue) == sorted(
        song.file for song in new_queue
    )


def queue_changed_externally(
    last_queue: Sequence[QueueEntry],
    new_queue: Sequence[QueueEntry],
    songs_added: Set[str],
) -> bool:
    """Decide whether a queue change came from someone other than us.

    Length changes are ours when fully explained by the previous queue plus
    our pushes. Same-length changes are ours only if the content is
    unchanged (a reshuffle).
    """
    if len(new_queue) != len(last_queue):
        return not queue_explained(last_queue, new_queue, songs_added)
    return not same_songs(last_queue, new_queue)


class QueueSynchronizer:
    """Fills the player's queue from a pin until the pin changes.

    Args:
        player: Player connection shared with other components
        ranker: Candidate sequence source over the analysed library
        metric_builder: Distance metric used for ranking
        sort_by: Ranking strategy (audio features or genre weights)
        dedup: Drop near-duplicate candidates
        keep_queue: Leave the existing queue around the pin untouched
        prefill: Number of candidates pushed when a run starts
    """

    def __init__(
        self,
        player: PlayerClient,
        ranker: SimilarityRanker,
        metric_builder: DistanceMetricBuilder,
        sort_by: RankingStrategy,
        dedup: bool = True,
        keep_queue: bool = False,
        prefill: int = 1,
    ):
        self.player = player
        self.ranker = ranker
        self.metric_builder = metric_builder
        self.sort_by = sort_by
        self.dedup = dedup
        self.keep_queue = keep_queue
        self.prefill = prefill

    def start(self, pin: QueueEntry) -> SyncRun:
        """Create the run state and prime the queue for a new pin.

        Raises:
            UnknownTrackError: If the pin hasn't been analysed
            PlayerProtocolError: If the pin has no queue position
            LibraryExhaustedError: If there is nothing to queue after the pin
        """
        candidates = self.ranker.playlist_from(
            [pin.file], self.metric_builder, self.sort_by, self.dedup
        )
        # The ranker yields the pin itself first
        next(candidates, None)

        run = SyncRun(pin=pin, candidates=candidates)
        self._prime(run)
        run.state = SyncState.STREAMING
        return run

    def run(self, pin: QueueEntry) -> QueueEntry:
        """Queue songs similar to `pin` until the listener picks a new song.

        Returns:
            The song now playing, to be used as the next pin

        Raises:
            LibraryExhaustedError: If the candidate sequence runs out
            PlayerError: If the player connection fails or desyncs
        """
        logger.info(f"Queueing from pinned song: {pin.label()}")
        run = self.start(pin)
        while True:
            new_pin = self.step(run)
            if new_pin is not None:
                return new_pin

    def _prime(self, run: SyncRun) -> None:
        pin = run.pin
        with self.player.lock:
            if pin.pos is None:
                raise PlayerProtocolError(
                    f"Pinned song {pin.file} has no queue position", "currentsong"
                )

            if not self.keep_queue:
                self._clear_around_pin(pin.pos)

            for _ in range(self.prefill):
                self._push_next(run)

            run.last_queue = self.player.queue()

    def _clear_around_pin(self, pin_pos: int) -> None:
        try:
            self.player.delete(0, pin_pos)
            if len(self.player.queue()) > 1:
                self.player.delete(1)
        except PlayerCommandError as e:
            logger.warning(f"Could not clear queue around pinned song: {e}")

    def _push_next(self, run: SyncRun) -> Track:
        track = next(run.candidates, None)
        if track is None:
            run.state = SyncState.TERMINATED
            raise LibraryExhaustedError(run.pin.file)

        # Recorded before pushing so our own notification is recognised
        run.songs_added.add(track.path)
        try:
            self.player.push(track.path)
            logger.debug(f"Queued {track.path}")
        except PlayerCommandError as e:
            logger.warning(
                f"Error while pushing song {track.title or track.path} to queue, skipping: {e}"
            )
        return track

    def step(self, run: SyncRun) -> Optional[QueueEntry]:
        """Wait for one queue notification and react to it.

        Returns:
            The new pin if the listener changed the queue, else None
        """
        changed = self.player.wait([QUEUE])
        if QUEUE not in changed:
            return None

        with self.player.lock:
            status = self.player.status()
            new_queue = self.player.queue()

            if queue_changed_externally(run.last_queue, new_queue, run.songs_added):
                logger.debug(
                    f"Queue changed outside the synchronizer "
                    f"({len(run.last_queue)} -> {len(new_queue)} songs)"
                )
                new_pin = self._current_song_after_change()
                run.state = SyncState.TERMINATED
                logger.info(f"Restarting with new pin: {new_pin.label()}")
                return new_pin

            run.last_queue = new_queue

            if self._needs_more(status.song_pos, status.queue_length):
                self._push_next(run)

        return None

    @staticmethod
    def _needs_more(song_pos: Optional[int], queue_length: int) -> bool:
        if queue_length <= 1:
            return True
        if song_pos is None:
            raise PlayerProtocolError(
                "Player reports no current song position for a non-empty queue",
                "status",
            )
        return song_pos >= queue_length - 1

    def _current_song_after_change(self) -> QueueEntry:
        song = self.player.current_song()
        if song is None:
            # The player can briefly report no song right after an edit
            logger.warning("No current song after queue change, retrying once")
            song = self.player.current_song()
        if song is None:
            raise PlayerProtocolError(
                "No current song after queue change", "currentsong"
            )
        return song
