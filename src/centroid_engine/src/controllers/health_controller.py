from fastapi import APIRouter

from centroid_engine.src.services.centroid_service import centroid_service

health_api = APIRouter(prefix="/v1/health", tags=["Health"])


@health_api.get("")
def health():
    return {"status": "ok", "centroids": len(centroid_service.list_states())}
