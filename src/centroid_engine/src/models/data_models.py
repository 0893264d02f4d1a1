from __future__ import annotations

import math
import time
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

import numpy as np
from pydantic import BaseModel, Field, field_validator

from centroid_engine.src.adapters.base_payload import PayloadContainer


def _validate_vector(value: List[float]) -> List[float]:
    if not value:
        raise ValueError("vector must contain at least one coordinate")
    if not all(math.isfinite(coord) for coord in value):
        raise ValueError("vector must not contain NaN/inf")
    return value


class Payload(BaseModel, PayloadContainer):
    """A single data point assigned to a centroid, with an optional time-to-live."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    vector: List[float]
    created_at: float = Field(default_factory=time.time)
    ttl: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("vector")
    def _finite_vector(cls, value: List[float]) -> List[float]:
        return _validate_vector(value)

    @field_validator("ttl")
    def _positive_ttl(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            raise ValueError("Payload ttl must be positive")
        return value

    def vec(self) -> np.ndarray:
        return np.asarray(self.vector, dtype=float)

    def expired(self, now: Optional[float] = None) -> bool:
        if self.ttl is None:
            return False
        current = time.time() if now is None else now
        return current - self.created_at >= self.ttl


class PayloadIn(BaseModel):
    """Incoming data point, as accepted by the HTTP surface."""

    id: Optional[str] = None
    vector: List[float]
    ttl: Optional[float] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CentroidCreate(BaseModel):
    id: str = Field(..., min_length=1, description="Unique identifier for the centroid")
    vector: List[float]
    metric: Optional[Literal["euclidean", "cosine"]] = None
    init_capacity: Optional[int] = Field(default=None, ge=0)

    @field_validator("vector")
    def _finite_vector(cls, value: List[float]) -> List[float]:
        return _validate_vector(value)


class CentroidState(BaseModel):
    """Read-only view of a centroid for monitoring."""

    id: str
    vector: List[float]
    size: int = Field(..., ge=0)
    metric: Optional[str] = None


class KNNQuery(BaseModel):
    vector: List[float]
    k: int = Field(default=1, ge=0)
    drain: bool = False


class DistributeRequest(BaseModel):
    n: int = Field(..., ge=0, description="Number of worst-fit payloads to redistribute")


def map_payload_in_to_payload(item: PayloadIn, default_ttl: Optional[float] = None) -> Payload:
    """Convert an incoming data point into a Payload ready to be assigned."""
    fields: Dict[str, Any] = {
        "vector": item.vector,
        "ttl": item.ttl if item.ttl is not None else default_ttl,
        "metadata": dict(item.metadata),
    }
    if item.id is not None:
        fields["id"] = item.id
    return Payload(**fields)
