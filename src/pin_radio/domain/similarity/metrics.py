"""
Distance metrics for similarity ranking.

A metric builder is handed the anchor vectors once and returns a metric
that scores any candidate vector against all of them. Lower is closer.
"""

from typing import Callable, Dict, Protocol, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_distances

from pin_radio.core.errors import ConfigurationError


class DistanceMetric(Protocol):
    def distance(self, vector: np.ndarray) -> float: ...

    def distances(self, vectors: np.ndarray) -> np.ndarray: ...


class DistanceMetricBuilder(Protocol):
    name: str

    def build(self, anchors: Sequence[np.ndarray]) -> DistanceMetric: ...


def _euclidean(vectors: np.ndarray, anchors: np.ndarray) -> np.ndarray:
    # (n, 1, d) - (1, m, d) -> (n, m)
    return np.linalg.norm(vectors[:, None, :] - anchors[None, :, :], axis=2)


class AnchoredMetric:
    """Mean pairwise distance from a vector to every anchor."""

    def __init__(
        self,
        anchors: Sequence[np.ndarray],
        pairwise: Callable[[np.ndarray, np.ndarray], np.ndarray],
    ):
        if len(anchors):
            self.anchors = np.vstack([np.asarray(a, dtype=np.float64) for a in anchors])
        else:
            self.anchors = np.empty((0, 0), dtype=np.float64)
        self._pairwise = pairwise

    def distances(self, vectors: np.ndarray) -> np.ndarray:
        vectors = np.atleast_2d(np.asarray(vectors, dtype=np.float64))
        if self.anchors.shape[0] == 0:
            # No anchors: everything is equally close, order is preserved
            return np.zeros(vectors.shape[0])
        return self._pairwise(vectors, self.anchors).mean(axis=1)

    def distance(self, vector: np.ndarray) -> float:
        return float(self.distances(vector)[0])


class PairwiseMetricBuilder:
    """Builds an AnchoredMetric around a pairwise distance function."""

    def __init__(self, name: str, pairwise: Callable[[np.ndarray, np.ndarray], np.ndarray]):
        self.name = name
        self._pairwise = pairwise

    def build(self, anchors: Sequence[np.ndarray]) -> AnchoredMetric:
        return AnchoredMetric(anchors, self._pairwise)

    def __repr__(self) -> str:
        return f"PairwiseMetricBuilder({self.name!r})"


euclidean_distance = PairwiseMetricBuilder("euclidean", _euclidean)
cosine_distance = PairwiseMetricBuilder("cosine", cosine_distances)

METRICS: Dict[str, PairwiseMetricBuilder] = {
    "euclidean": euclidean_distance,
    "cosine": cosine_distance,
}


def get_metric_builder(name: str) -> PairwiseMetricBuilder:
    """Look up a metric builder by its config name.

    Raises:
        ConfigurationError: If the name is unknown
    """
    try:
        return METRICS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown distance metric {name!r}. Valid metrics are: {sorted(METRICS)}"
        ) from None
