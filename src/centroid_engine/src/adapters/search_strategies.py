"""Nearest/farthest-neighbor search strategies injected into centroids.

A strategy is called as ``strategy(target, candidates, k)`` where
``candidates`` is a lazy, single-pass iterator of vectors. It returns at most
``k`` indices, positional in the order the candidates were yielded, and must
finish reading the iterator before returning.
"""

from __future__ import annotations

import abc
from collections.abc import Callable, Iterable
from typing import Literal

import numpy as np

from centroid_engine.src.utils.vector_ops import Vector, cosine_similarity, euclidean_distance

Metric = Literal["euclidean", "cosine"]
SUPPORTED_METRICS: tuple[str, ...] = ("euclidean", "cosine")

SearchFunc = Callable[[Vector, Iterable[Vector], int], list[int]]


class BaseSearchStrategy(abc.ABC):
    """Common contract for k-best/k-worst candidate selection."""

    def __init__(self, metric: Metric = "euclidean") -> None:
        if metric not in SUPPORTED_METRICS:
            msg = f"metric must be one of {SUPPORTED_METRICS}, got {metric!r}"
            raise ValueError(msg)
        self.metric = metric

    def __call__(self, target: Vector, candidates: Iterable[Vector], k: int) -> list[int]:
        # Drain the iterator first so no generator leaks out of the call.
        scores = [self._score(target, vec) for vec in candidates]
        if k <= 0 or not scores:
            return []
        order = np.argsort(self._rank_keys(np.asarray(scores)), kind="stable")
        return [int(index) for index in order[:k]]

    def _score(self, target: Vector, candidate: Vector) -> float:
        if self.metric == "cosine":
            return cosine_similarity(target, candidate)
        return euclidean_distance(target, candidate)

    def _higher_is_closer(self) -> bool:
        return self.metric == "cosine"

    @abc.abstractmethod
    def _rank_keys(self, scores: np.ndarray) -> np.ndarray:
        """Map raw scores to keys where ascending order means best first."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(metric={self.metric!r})"


class NearestNeighborSearch(BaseSearchStrategy):
    """Select the ``k`` candidates closest to the target."""

    def _rank_keys(self, scores: np.ndarray) -> np.ndarray:
        return -scores if self._higher_is_closer() else scores


class FarthestNeighborSearch(BaseSearchStrategy):
    """Select the ``k`` candidates farthest from the target."""

    def _rank_keys(self, scores: np.ndarray) -> np.ndarray:
        return scores if self._higher_is_closer() else -scores


def build_search_strategies(
    metric: Metric = "euclidean",
) -> tuple[NearestNeighborSearch, FarthestNeighborSearch]:
    """Return a matching (knn, kfn) pair for ``metric``."""
    return NearestNeighborSearch(metric), FarthestNeighborSearch(metric)
