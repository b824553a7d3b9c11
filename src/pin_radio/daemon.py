"""
Pin Radio daemon loop.

Pins whatever is playing, lets the queue synchronizer run until the
listener picks something else, re-pins and repeats until the library has
nothing left to offer.
"""

from typing import List, Optional

from loguru import logger

from pin_radio.core.config import Config
from pin_radio.core.database import load_library
from pin_radio.core.errors import (
    LibraryExhaustedError,
    PinRadioError,
    PlayerProtocolError,
)
from pin_radio.core.output import log
from pin_radio.domain.library.models import QueueEntry, Track
from pin_radio.domain.playback import PLAYER, QUEUE, PlayerClient, connect
from pin_radio.domain.queue import QueueSynchronizer
from pin_radio.domain.similarity import (
    FeatureRanking,
    GenreRanking,
    RankingStrategy,
    SimilarityRanker,
    build_track_weights,
    get_metric_builder,
    load_genre_weights,
)

MAX_DESYNC_RESTARTS = 3


def build_ranking(config: Config, tracks: List[Track]) -> RankingStrategy:
    """Pick the ranking strategy named in the queue config.

    Genre ranking loads the weight table up front so a bad file fails
    before anything touches the player.
    """
    if config.queue.ranking == "genres":
        genre_weights = load_genre_weights(config.library.genres_path)
        return GenreRanking(build_track_weights(tracks, genre_weights))
    return FeatureRanking()


def wait_for_current_song(player: PlayerClient) -> QueueEntry:
    """Return the current song, blocking until one is playing."""
    song = player.current_song()
    if song is not None:
        return song

    log("Start playing a song...")
    while song is None:
        player.wait([QUEUE, PLAYER])
        song = player.current_song()
    return song


def follow_pins(synchronizer: QueueSynchronizer, pin: QueueEntry) -> QueueEntry:
    """Run the synchronizer pin after pin until the library runs out.

    A player desync ends only the current run: the current song is read
    again and becomes the next pin. Connection errors propagate.

    Returns:
        The last pin

    Raises:
        PlayerProtocolError: If the player stays out of sync for more than
            MAX_DESYNC_RESTARTS runs in a row
    """
    desyncs = 0
    while True:
        try:
            next_pin = synchronizer.run(pin)
        except LibraryExhaustedError as e:
            logger.info(f"Candidate sequence exhausted: {e}")
            log("You made it to the end of your music library!")
            return pin
        except PlayerProtocolError as e:
            desyncs += 1
            if desyncs > MAX_DESYNC_RESTARTS:
                raise
            logger.warning(f"Player out of sync, restarting from the current song: {e}")
            next_pin = wait_for_current_song(synchronizer.player)
        else:
            desyncs = 0

        pin = next_pin
        log(f"Restarting with new pinned song: {pin.label()}")


def run_daemon(config: Config, player: Optional[PlayerClient] = None) -> int:
    """Load the library, connect to MPD and follow pins.

    Returns:
        Process exit code
    """
    try:
        config.queue.validate()
        tracks = load_library(config.library.database_path)
        sort_by = build_ranking(config, tracks)
        metric_builder = get_metric_builder(config.queue.metric)
        player = player or connect(config.player)
    except PinRadioError as e:
        log(f"Startup failed: {e}", level="error")
        return 1

    synchronizer = QueueSynchronizer(
        player,
        SimilarityRanker(tracks),
        metric_builder,
        sort_by,
        dedup=config.queue.dedup,
        keep_queue=config.queue.keep_queue,
        prefill=config.queue.prefill,
    )

    try:
        pin = wait_for_current_song(player)
        log(f"Queueing from pinned song: {pin.label()}")
        follow_pins(synchronizer, pin)
        return 0
    except PinRadioError as e:
        logger.exception("Queue synchronization stopped")
        log(f"Queue synchronization stopped: {e}", level="error")
        return 1
    finally:
        player.close()
