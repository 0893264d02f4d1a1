from __future__ import annotations

from contextlib import contextmanager
from http import HTTPStatus
from typing import Iterator, List

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from centroid_engine.src.models.data_models import (
    CentroidCreate,
    DistributeRequest,
    KNNQuery,
    PayloadIn,
    map_payload_in_to_payload,
)
from centroid_engine.src.services.centroid_service import centroid_service


router = APIRouter(prefix="/v1/centroids", tags=["Centroids"])


class PayloadBatch(BaseModel):
    payloads: List[PayloadIn]


@contextmanager
def _service_errors() -> Iterator[None]:
    try:
        yield
    except KeyError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=exc.args[0]) from exc
    except ValueError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=str(exc)) from exc


@router.post("", summary="Create a centroid")
def create_centroid(payload: CentroidCreate):
    with _service_errors():
        centroid = centroid_service.create_centroid(
            payload.id,
            payload.vector,
            metric=payload.metric,
            init_capacity=payload.init_capacity,
        )
    if centroid is None:
        raise HTTPException(
            status_code=HTTPStatus.UNPROCESSABLE_ENTITY,
            detail=f"Centroid {payload.id} could not be created",
        )
    return {"id": payload.id, "vector": centroid.vec().tolist(), "size": centroid.len_dp()}


@router.get("", summary="List centroids")
def list_centroids():
    return {"centroids": centroid_service.list_states()}


@router.get("/config", summary="Get registry defaults")
def get_config():
    return centroid_service.get_config()


@router.delete("/{centroid_id}", summary="Remove a centroid")
def remove_centroid(centroid_id: str):
    with _service_errors():
        orphans = centroid_service.remove_centroid(centroid_id)
    return {"id": centroid_id, "orphans": orphans}


@router.post("/{centroid_id}/payloads", summary="Add payloads to one centroid")
def add_payloads(centroid_id: str, batch: PayloadBatch):
    accepted = 0
    rejected: List[str] = []
    with _service_errors():
        for item in batch.payloads:
            payload = map_payload_in_to_payload(item, default_ttl=centroid_service.payload_ttl)
            if centroid_service.add_payload(centroid_id, payload):
                accepted += 1
            else:
                rejected.append(payload.id)
    return {"id": centroid_id, "accepted": accepted, "rejected": rejected}


@router.post("/assign", summary="Assign payloads to their nearest centroid")
def assign_payloads(batch: PayloadBatch):
    assignments = {}
    with _service_errors():
        for item in batch.payloads:
            payload = map_payload_in_to_payload(item, default_ttl=centroid_service.payload_ttl)
            assignments[payload.id] = centroid_service.assign_payload(payload)
    return {"assignments": assignments}


@router.post("/{centroid_id}/knn", summary="Look up best-fit payloads")
def knn_lookup(centroid_id: str, query: KNNQuery):
    with _service_errors():
        found = centroid_service.knn_lookup(centroid_id, query.vector, query.k, query.drain)
    return {"id": centroid_id, "drained": query.drain, "payloads": found}


@router.post("/{centroid_id}/distribute", summary="Redistribute worst-fit payloads")
def distribute(centroid_id: str, request: DistributeRequest):
    with _service_errors():
        sizes = centroid_service.distribute(centroid_id, request.n)
    return {"id": centroid_id, "sizes": sizes}


@router.post("/move", summary="Move every centroid to the mean of its payloads")
def move_vectors():
    return {"moved": centroid_service.move_vectors()}


@router.post("/expire", summary="Sweep expired payloads")
def expire():
    return {"removed": centroid_service.expire_all()}


@router.post("/trim", summary="Rebuild payload stores at exact size")
def trim():
    return {"sizes": centroid_service.mem_trim_all()}


@router.post("/reset", summary="Remove every centroid")
def reset():
    centroid_service.reset()
    return {"message": "Centroid registry reset"}
