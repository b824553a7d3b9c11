"""
Genre weight metric.

Each genre maps to a fixed-length vector of weights along the everynoise.com
axes (organic/mechanical, ethereal/spiky, energy, dynamic variation,
instrumentalness). A track's genre vector is the mean of the vectors of its
comma-separated genre tags, which gives a second distance space alongside
the raw audio features.
"""

import json
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, Sequence, Union

import numpy as np
from loguru import logger

from pin_radio.core.errors import ConfigurationError
from pin_radio.domain.library.models import Track

from .metrics import DistanceMetricBuilder

DEFAULT_GENRE_DIMENSION = 5

GenreWeights = Dict[str, np.ndarray]
TrackWeights = Dict[str, np.ndarray]


def load_genre_weights(path: Union[str, Path]) -> GenreWeights:
    """Load the genre weight table from a JSON object of name -> vector.

    Raises:
        ConfigurationError: If the file is missing, isn't a JSON object, or
            holds non-numeric or ragged vectors
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Could not open genre weights {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Could not parse genre weights {path}: {e}") from e

    if not isinstance(data, dict) or not data:
        raise ConfigurationError(f"Genre weights {path} must be a non-empty JSON object")

    weights: GenreWeights = {}
    dimension = None
    for genre, values in data.items():
        if not isinstance(values, list) or not values:
            raise ConfigurationError(f"Genre {genre!r} in {path} has no weights")
        try:
            vector = np.array([float(v) for v in values], dtype=np.float32)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"Genre {genre!r} in {path} has non-numeric weights"
            ) from None
        if dimension is None:
            dimension = len(vector)
        elif len(vector) != dimension:
            raise ConfigurationError(
                f"Genre {genre!r} in {path} has {len(vector)} weights, expected {dimension}"
            )
        weights[genre] = vector

    logger.info(f"Loaded {len(weights)} genre weights ({dimension} dimensions) from {path}")
    return weights


def genre_dimension(weights: Dict[str, np.ndarray]) -> int:
    """Vector length used by a weight table (falls back to the default)."""
    for vector in weights.values():
        return len(vector)
    return DEFAULT_GENRE_DIMENSION


def collapse_genres(
    genre_weights: GenreWeights,
    genres: Optional[str],
    dimension: Optional[int] = None,
) -> np.ndarray:
    """Average the weight vectors of a comma-separated genre string.

    Unknown genres are dropped. If nothing resolves the zero vector is
    returned, so untagged tracks still rank (far from everything tagged).
    """
    dimension = dimension or genre_dimension(genre_weights)
    if not genres:
        return np.zeros(dimension, dtype=np.float32)

    resolved = [
        genre_weights[tag]
        for tag in (part.strip() for part in genres.split(","))
        if tag in genre_weights
    ]
    if not resolved:
        return np.zeros(dimension, dtype=np.float32)
    stacked = np.vstack(resolved).astype(np.float64)
    return stacked.mean(axis=0).astype(np.float32)


def build_track_weights(tracks: Iterable[Track], genre_weights: GenreWeights) -> TrackWeights:
    """Compute the genre vector of every track that carries genre tags."""
    dimension = genre_dimension(genre_weights)
    track_weights: TrackWeights = {}
    for track in tracks:
        if track.genre:
            track_weights.setdefault(
                track.path, collapse_genres(genre_weights, track.genre, dimension)
            )
    logger.debug(f"Computed genre weights for {len(track_weights)} tracks")
    return track_weights


def closest_to_genre_songs(
    initial_songs: Sequence[Track],
    candidate_songs: Sequence[Track],
    metric_builder: DistanceMetricBuilder,
    track_weights: TrackWeights,
) -> Iterator[Track]:
    """Sort candidates by genre-weight distance to the initial songs.

    Initial songs without a weight don't contribute to the metric. Candidates
    without a weight are scored as the zero vector. Ties keep the candidate
    order.
    """
    dimension = genre_dimension(track_weights)
    anchors = [
        track_weights[song.path] for song in initial_songs if song.path in track_weights
    ]
    metric = metric_builder.build(anchors)

    zero = np.zeros(dimension, dtype=np.float32)
    if not candidate_songs:
        return iter(())
    vectors = np.vstack([track_weights.get(song.path, zero) for song in candidate_songs])
    scores = metric.distances(vectors)

    order = sorted(range(len(candidate_songs)), key=lambda i: scores[i])
    return (candidate_songs[i] for i in order)
