"""
Similarity ranking over the analysed library.

Two ranking strategies share one contract: given anchor tracks, candidate
tracks and a metric builder, yield the candidates nearest first.
`FeatureRanking` ranks on the audio feature vectors, `GenreRanking` on
genre weight vectors. `SimilarityRanker` turns either into the candidate
sequence for a pin.
"""

from typing import Iterable, Iterator, List, Protocol, Sequence

import numpy as np
from loguru import logger

from pin_radio.core.errors import UnknownTrackError
from pin_radio.domain.library.models import Track

from .genres import TrackWeights, closest_to_genre_songs
from .metrics import DistanceMetricBuilder

# Consecutive tracks closer than this in feature space count as duplicates
DEDUP_DISTANCE = 0.05


class RankingStrategy(Protocol):
    def __call__(
        self,
        initial_songs: Sequence[Track],
        candidate_songs: Sequence[Track],
        metric_builder: DistanceMetricBuilder,
    ) -> Iterator[Track]: ...


def closest_to_songs(
    initial_songs: Sequence[Track],
    candidate_songs: Sequence[Track],
    metric_builder: DistanceMetricBuilder,
) -> Iterator[Track]:
    """Sort candidates by feature distance to the initial songs (stable)."""
    if not candidate_songs:
        return iter(())
    metric = metric_builder.build([song.vector() for song in initial_songs])
    scores = metric.distances(np.vstack([song.vector() for song in candidate_songs]))
    order = sorted(range(len(candidate_songs)), key=lambda i: scores[i])
    return (candidate_songs[i] for i in order)


class FeatureRanking:
    """Rank by raw audio feature vectors."""

    name = "features"

    def __call__(self, initial_songs, candidate_songs, metric_builder) -> Iterator[Track]:
        return closest_to_songs(initial_songs, candidate_songs, metric_builder)


class GenreRanking:
    """Rank by per-track genre weight vectors."""

    name = "genres"

    def __init__(self, track_weights: TrackWeights):
        self.track_weights = track_weights

    def __call__(self, initial_songs, candidate_songs, metric_builder) -> Iterator[Track]:
        return closest_to_genre_songs(
            initial_songs, candidate_songs, metric_builder, self.track_weights
        )


def _same_song_key(track: Track):
    if track.artist and track.title:
        return (track.artist.casefold(), track.title.casefold())
    return None


def dedup_playlist(
    tracks: Iterable[Track], distance_threshold: float = DEDUP_DISTANCE
) -> Iterator[Track]:
    """Drop repeated paths, repeated artist/title pairs and near-identical neighbours."""
    seen_paths = set()
    seen_songs = set()
    previous = None
    for track in tracks:
        if track.path in seen_paths:
            continue
        key = _same_song_key(track)
        if key is not None and key in seen_songs:
            continue
        if (
            previous is not None
            and track.features
            and len(track.features) == len(previous.features)
            and np.linalg.norm(track.vector() - previous.vector()) < distance_threshold
        ):
            logger.debug(f"Skipping near-duplicate of {previous.path}: {track.path}")
            continue

        seen_paths.add(track.path)
        if key is not None:
            seen_songs.add(key)
        previous = track
        yield track


class SimilarityRanker:
    """Candidate sequences over an analysed library."""

    def __init__(self, tracks: Sequence[Track]):
        self.tracks: List[Track] = list(tracks)
        self._by_path = {track.path: track for track in self.tracks}

    def song_from_path(self, path: str) -> Track:
        """Look up a track's analysis by library-relative path.

        Raises:
            UnknownTrackError: If the track hasn't been analysed
        """
        try:
            return self._by_path[path]
        except KeyError:
            raise UnknownTrackError(path) from None

    def playlist_from(
        self,
        paths: Sequence[str],
        metric_builder: DistanceMetricBuilder,
        sort_by: RankingStrategy,
        dedup: bool = True,
    ) -> Iterator[Track]:
        """Lazily produce the library ordered by similarity to `paths`.

        The anchors themselves come first, in the order given. Each call
        returns a fresh sequence.

        Raises:
            UnknownTrackError: If any anchor hasn't been analysed
        """
        anchors = [self.song_from_path(path) for path in paths]
        logger.debug(
            f"Building candidate sequence from {len(anchors)} anchor(s) "
            f"over {len(self.tracks)} tracks (metric={metric_builder.name})"
        )
        playlist = self._ranked(anchors, metric_builder, sort_by)
        if dedup:
            playlist = dedup_playlist(playlist)
        return playlist

    def _ranked(
        self,
        anchors: List[Track],
        metric_builder: DistanceMetricBuilder,
        sort_by: RankingStrategy,
    ) -> Iterator[Track]:
        anchor_paths = {anchor.path for anchor in anchors}
        yield from anchors
        candidates = [track for track in self.tracks if track.path not in anchor_paths]
        yield from sort_by(anchors, candidates, metric_builder)
