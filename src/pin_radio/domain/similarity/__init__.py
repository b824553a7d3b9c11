"""Similarity domain - distance metrics, genre weights and candidate ranking.

This domain handles:
- Distance metric builders (euclidean, cosine)
- Genre weight vectors collapsed from genre tags
- Ranking strategies over audio features or genre weights
- Lazy candidate sequences for a pinned track
"""

from .genres import (
    DEFAULT_GENRE_DIMENSION,
    GenreWeights,
    TrackWeights,
    build_track_weights,
    closest_to_genre_songs,
    collapse_genres,
    load_genre_weights,
)
from .metrics import (
    METRICS,
    cosine_distance,
    euclidean_distance,
    get_metric_builder,
)
from .ranking import (
    DEDUP_DISTANCE,
    FeatureRanking,
    GenreRanking,
    RankingStrategy,
    SimilarityRanker,
    closest_to_songs,
    dedup_playlist,
)

__all__ = [
    # Genres
    "DEFAULT_GENRE_DIMENSION",
    "GenreWeights",
    "TrackWeights",
    "build_track_weights",
    "closest_to_genre_songs",
    "collapse_genres",
    "load_genre_weights",
    # Metrics
    "METRICS",
    "cosine_distance",
    "euclidean_distance",
    "get_metric_builder",
    # Ranking
    "DEDUP_DISTANCE",
    "FeatureRanking",
    "GenreRanking",
    "RankingStrategy",
    "SimilarityRanker",
    "closest_to_songs",
    "dedup_playlist",
]
