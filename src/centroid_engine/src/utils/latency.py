from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from time import perf_counter

from loguru import logger


@dataclass(slots=True)
class Latency:
    """Elapsed wall time of a centroid operation, in milliseconds."""

    ms: float = 0.0


@contextmanager
def measure_latency(operation: str | None = None, **context: object) -> Iterator[Latency]:
    """Measure elapsed time; when ``operation`` is given, log it at DEBUG."""
    start = perf_counter()
    latency = Latency()
    try:
        yield latency
    finally:
        latency.ms = (perf_counter() - start) * 1000
        if operation is not None:
            logger.bind(**context).debug(
                "{operation} took {ms:.3f} ms", operation=operation, ms=latency.ms,
            )
