"""Centroids in a streaming k-means context.

A centroid owns a representative vector and the payloads currently assigned
to it. What "near" and "far" mean is decided by the two search strategies
injected at construction, so the same class serves Euclidean and cosine
clustering alike.

Not thread-safe: callers sharing centroids across threads must lock
externally, and two centroids listing each other as receivers must never
distribute concurrently.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

import numpy as np
from loguru import logger

from centroid_engine.src.adapters.base_payload import PayloadContainer, PayloadReceiver
from centroid_engine.src.adapters.search_strategies import SearchFunc
from centroid_engine.src.utils.latency import measure_latency
from centroid_engine.src.utils.logging_utils import log_error
from centroid_engine.src.utils.vector_ops import Vector, as_vector, vec_mean


def _unique(indexes: Sequence[int]) -> list[int]:
    # Order-preserving: a strategy repeating an index must not yield a payload twice.
    return list(dict.fromkeys(indexes))


class Centroid(PayloadReceiver):
    """Mutable cluster representative: a vector plus its assigned payloads.

    Example:
        knn, kfn = build_search_strategies("euclidean")
        centroid = Centroid([0.0, 0.0], 16, knn, kfn)
        centroid.add_payload(Payload(vector=[1.0, 0.0]))
        nearest = centroid.knn_lookup([0.0, 0.0], k=1)
    """

    def __init__(
        self,
        init_vec: Vector,
        init_cap: int = 0,
        knn_search: SearchFunc | None = None,
        kfn_search: SearchFunc | None = None,
    ) -> None:
        if knn_search is None or kfn_search is None:
            msg = "Centroid requires both a knn and a kfn search strategy"
            raise ValueError(msg)
        if init_cap < 0:
            msg = f"init_cap must be >= 0, got {init_cap}"
            raise ValueError(msg)
        self._vec = as_vector(init_vec)
        self.capacity_hint = init_cap
        self.data_points: list[PayloadContainer] = []
        self._knn_search = knn_search
        self._kfn_search = kfn_search

    @property
    def knn_search(self) -> SearchFunc:
        return self._knn_search

    def vec(self) -> np.ndarray:
        """Return the representative vector of the centroid."""
        return self._vec

    def add_payload(self, payload: PayloadContainer) -> bool:
        """Accept ``payload`` unless its vector length differs or it has expired."""
        if len(payload.vec()) != len(self._vec) or payload.expired():
            return False
        self.data_points.append(payload)
        return True

    def _rm_payload(self, index: int) -> None:
        del self.data_points[index]

    def _rm_payloads(self, indexes: Sequence[int]) -> None:
        # Highest index first, so earlier removals never shift pending ones.
        for index in sorted(set(indexes), reverse=True):
            self._rm_payload(index)

    def _payload_vec_generator(self) -> Iterator[np.ndarray]:
        """Yield vectors of live payloads, evicting expired ones on the way.

        Eviction only happens at the cursor, so once the generator is
        exhausted the n-th yielded vector belongs to ``data_points[n]``. Any
        other mutation while the generator is alive invalidates it.
        """
        i = 0
        while True:
            while i < len(self.data_points) and self.data_points[i].expired():
                self._rm_payload(i)
            if i >= len(self.data_points):
                return
            i += 1
            yield self.data_points[i - 1].vec()

    def drain_unordered(self, n: int) -> list[PayloadContainer]:
        """Remove up to ``n`` payloads in storage order, dropping expired ones."""
        drained: list[PayloadContainer] = []
        while self.data_points and len(drained) < n:
            payload = self.data_points[0]
            if not payload.expired():
                drained.append(payload)
            self._rm_payload(0)
        return drained

    def drain_ordered(self, n: int) -> list[PayloadContainer]:
        """Remove the ``n`` payloads farthest from the centroid vector.

        "Farthest" is whatever the kfn strategy says: largest distance for a
        Euclidean strategy, lowest similarity for a cosine one.
        """
        if n <= 0:
            return []
        indexes = _unique(self._kfn_search(self._vec, self._payload_vec_generator(), n))
        drained = [self.data_points[i] for i in indexes]
        self._rm_payloads(indexes)
        return drained

    def expire(self) -> None:
        """Remove expired payloads. Reserved memory is released by ``mem_trim``."""
        i = 0
        while i < len(self.data_points):
            if self.data_points[i].expired():
                self._rm_payload(i)
                continue
            i += 1

    def len_dp(self) -> int:
        """Number of stored payloads, including expired ones not yet swept."""
        return len(self.data_points)

    def mem_trim(self) -> None:
        """Rebuild the payload store with only live payloads. Costly."""
        with measure_latency() as latency:
            before = len(self.data_points)
            # Both stores are alive until the swap, so peak memory doubles.
            self.data_points = [p for p in self.data_points if not p.expired()]
        logger.debug(
            "centroid store trimmed | before={before} after={after} latency_ms={ms:.3f}",
            before=before,
            after=len(self.data_points),
            ms=latency.ms,
        )

    def move_vector(self) -> bool:
        """Move the centroid vector to the mean of its live payloads."""
        mean = vec_mean(self._payload_vec_generator())
        if mean is None:
            return False
        self._vec = mean
        return True

    def distribute_payload(self, n: int, receivers: Sequence[PayloadReceiver] | None) -> None:
        """Hand the ``n`` worst-fit payloads to the best-matching receivers.

        Payloads that find no receiver, or that a receiver rejects, go back
        into this centroid. ``self`` may be one of the receivers.
        """
        if not receivers:
            return
        # Drained, not read: self can be among the receivers.
        data = self.drain_ordered(n)
        handled = 0
        returned = 0
        try:
            for payload in data:
                indexes = self._knn_search(
                    payload.vec(), (receiver.vec() for receiver in receivers), 1,
                )
                if indexes and receivers[indexes[0]].add_payload(payload):
                    handled += 1
                    continue
                self._return_payload(payload)
                handled += 1
                returned += 1
        finally:
            if handled < len(data):
                log_error(
                    f"payload distribution interrupted, returning {len(data) - handled} payloads to origin",
                    component="centroid",
                )
            for payload in data[handled:]:
                self._return_payload(payload)
        logger.debug(
            "payload distributed | drained={drained} returned={returned} receivers={receivers}",
            drained=len(data),
            returned=returned,
            receivers=len(receivers),
        )

    def _return_payload(self, payload: PayloadContainer) -> None:
        if self.add_payload(payload):
            return
        logger.warning(
            "payload rejected by its origin centroid, keeping it until next expiry sweep | "
            "expired={expired} dim={dim} centroid_dim={centroid_dim}",
            expired=payload.expired(),
            dim=len(payload.vec()),
            centroid_dim=len(self._vec),
        )
        self.data_points.append(payload)

    def knn_lookup(self, vec: Vector, k: int, drain: bool = False) -> list[PayloadContainer]:
        """Return the ``k`` payloads that best fit ``vec``; ``drain`` also removes them."""
        if k <= 0:
            return []
        indexes = _unique(self._knn_search(as_vector(vec), self._payload_vec_generator(), k))
        found = [self.data_points[i] for i in indexes]
        if drain:
            self._rm_payloads(indexes)
        return found

    def __repr__(self) -> str:
        return f"Centroid(vec={self._vec.tolist()}, size={len(self.data_points)})"
