from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from centroid_engine.src.adapters.base_payload import PayloadContainer
from centroid_engine.src.adapters.search_strategies import (
    SearchFunc,
    build_search_strategies,
)
from centroid_engine.src.config import config
from centroid_engine.src.models.centroid import Centroid
from centroid_engine.src.models.data_models import CentroidState
from centroid_engine.src.utils.latency import measure_latency
from centroid_engine.src.utils.logging_utils import component_logger, log_info, log_warning

log = component_logger("centroid_service")

StrategyFactory = Callable[[str], Tuple[SearchFunc, SearchFunc]]


class CentroidService:
    """Registry of named centroids sharing one configuration.

    Centroids are not thread-safe, so every operation here runs under a
    single registry lock.
    """

    DEFAULT_CONFIG = {
        "metric": "euclidean",
        "init_capacity": 0,
        "payload_ttl": None,
    }

    def __init__(
        self,
        strategy_factory: Optional[StrategyFactory] = None,
        **config,
    ):
        self._config = {**self.DEFAULT_CONFIG, **config}
        self._factory = strategy_factory or build_search_strategies
        self._centroids: Dict[str, Centroid] = {}
        self._metrics: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def payload_ttl(self) -> Optional[float]:
        return self._config["payload_ttl"]

    def create_centroid(
        self,
        centroid_id: str,
        init_vec: Sequence[float],
        metric: Optional[str] = None,
        init_capacity: Optional[int] = None,
    ) -> Optional[Centroid]:
        """Register a new centroid; None when its strategies cannot be built."""
        metric = metric or self._config["metric"]
        capacity = self._config["init_capacity"] if init_capacity is None else init_capacity
        with self._lock:
            if centroid_id in self._centroids:
                msg = f"Centroid already exists: {centroid_id}"
                raise ValueError(msg)
            try:
                knn, kfn = self._factory(metric)
                centroid = Centroid(init_vec, capacity, knn, kfn)
            except ValueError as exc:
                log.warning(
                    "centroid not created | id={cid} metric={metric} reason={reason}",
                    cid=centroid_id,
                    metric=metric,
                    reason=str(exc),
                )
                return None
            self._centroids[centroid_id] = centroid
            self._metrics[centroid_id] = metric
        log.info(
            "centroid created | id={cid} metric={metric} dim={dim}",
            cid=centroid_id,
            metric=metric,
            dim=len(centroid.vec()),
        )
        return centroid

    def get_centroid(self, centroid_id: str) -> Centroid:
        centroid = self._centroids.get(centroid_id)
        if centroid is None:
            raise KeyError(f"Centroid does not exist: {centroid_id}")
        return centroid

    def remove_centroid(self, centroid_id: str) -> List[PayloadContainer]:
        """Drop a centroid from the registry and hand back its live payloads."""
        with self._lock:
            centroid = self.get_centroid(centroid_id)
            del self._centroids[centroid_id]
            self._metrics.pop(centroid_id, None)
            orphans = centroid.drain_unordered(centroid.len_dp())
        log_info(
            f"centroid removed | id={centroid_id} orphans={len(orphans)}",
            component="centroid_service",
        )
        return orphans

    def add_payload(self, centroid_id: str, payload: PayloadContainer) -> bool:
        with self._lock:
            return self.get_centroid(centroid_id).add_payload(payload)

    def assign_payload(self, payload: PayloadContainer) -> Optional[str]:
        """Add ``payload`` to the closest centroid willing to take it.

        Closeness uses the candidates' own metric; candidates registered with
        different metrics cannot be ranked against each other (ValueError).
        """
        with self._lock:
            dim = len(payload.vec())
            candidates = [
                (cid, centroid)
                for cid, centroid in self._centroids.items()
                if len(centroid.vec()) == dim
            ]
            metrics = {self._metrics[cid] for cid, _ in candidates}
            if len(metrics) > 1:
                msg = f"cannot rank centroids scored with different metrics: {sorted(metrics)}"
                raise ValueError(msg)
            ranking: List[int] = []
            if candidates:
                # One metric across candidates, so any candidate's knn ranks them all.
                ranking = candidates[0][1].knn_search(
                    payload.vec(), (centroid.vec() for _, centroid in candidates), len(candidates),
                )
            for index in ranking:
                cid, centroid = candidates[index]
                if centroid.add_payload(payload):
                    return cid
        log_warning(
            f"payload not assigned | dim={dim} candidates={len(candidates)}",
            component="centroid_service",
        )
        return None

    def knn_lookup(
        self,
        centroid_id: str,
        vec: Sequence[float],
        k: int,
        drain: bool = False,
    ) -> List[PayloadContainer]:
        with self._lock, measure_latency("knn_lookup", centroid=centroid_id):
            return self.get_centroid(centroid_id).knn_lookup(vec, k, drain)

    def distribute(self, centroid_id: str, n: int) -> Dict[str, int]:
        """Redistribute the ``n`` worst payloads of one centroid over the registry.

        The source centroid is itself a receiver, so a payload already in its
        best home stays put. Returns the payload count per centroid afterwards.
        """
        with self._lock, measure_latency("distribute", centroid=centroid_id, n=n):
            source = self.get_centroid(centroid_id)
            dim = len(source.vec())
            receivers = [c for c in self._centroids.values() if len(c.vec()) == dim]
            source.distribute_payload(n, receivers)
            return self._sizes()

    def move_vectors(self) -> Dict[str, bool]:
        """Recompute every centroid vector; False marks centroids with no live payloads."""
        with self._lock, measure_latency("move_vectors"):
            moved = {cid: centroid.move_vector() for cid, centroid in self._centroids.items()}
        skipped = [cid for cid, ok in moved.items() if not ok]
        if skipped:
            log.debug("centroids without live payloads kept in place | ids={ids}", ids=skipped)
        return moved

    def expire_all(self) -> Dict[str, int]:
        """Sweep expired payloads; returns how many each centroid lost."""
        removed: Dict[str, int] = {}
        with self._lock:
            for cid, centroid in self._centroids.items():
                before = centroid.len_dp()
                centroid.expire()
                removed[cid] = before - centroid.len_dp()
        log.info("expired payloads swept | removed={removed}", removed=sum(removed.values()))
        return removed

    def mem_trim_all(self) -> Dict[str, int]:
        with self._lock, measure_latency("mem_trim_all"):
            for centroid in self._centroids.values():
                centroid.mem_trim()
            return self._sizes()

    def list_states(self) -> List[CentroidState]:
        with self._lock:
            return [
                CentroidState(
                    id=cid,
                    vector=centroid.vec().tolist(),
                    size=centroid.len_dp(),
                    metric=self._metrics.get(cid),
                )
                for cid, centroid in self._centroids.items()
            ]

    def reset(self) -> None:
        with self._lock:
            self._centroids = {}
            self._metrics = {}

    def get_config(self) -> Dict[str, Any]:
        return dict(self._config)

    def _sizes(self) -> Dict[str, int]:
        return {cid: centroid.len_dp() for cid, centroid in self._centroids.items()}


centroid_service = CentroidService(
    metric=config.centroid.default_metric,
    init_capacity=config.centroid.init_capacity,
    payload_ttl=config.centroid.payload_ttl,
)
