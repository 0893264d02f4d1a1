"""Shared abstractions for the items a centroid holds and the peers it feeds.

Payloads are owned by exactly one centroid at a time; receivers are anything
(usually another centroid) that can take a payload over during redistribution.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np


class PayloadContainer(abc.ABC):
    """Common contract for data points assigned to a centroid."""

    @abc.abstractmethod
    def vec(self) -> np.ndarray:
        """Return the position of the data point."""

    @abc.abstractmethod
    def expired(self) -> bool:
        """Return True once the data point is stale and should be dropped."""


class PayloadReceiver(abc.ABC):
    """Common contract for redistribution targets."""

    @abc.abstractmethod
    def vec(self) -> np.ndarray:
        """Return the representative position used for nearest-match scoring."""

    @abc.abstractmethod
    def add_payload(self, payload: PayloadContainer) -> bool:
        """Accept ``payload`` or return False without side effects."""
