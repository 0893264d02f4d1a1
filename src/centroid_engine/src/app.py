from fastapi import FastAPI

from centroid_engine.src.controllers.centroid_controller import router as centroid_api
from centroid_engine.src.controllers.health_controller import health_api


def create_app() -> FastAPI:
    app = FastAPI(title="Centroid Engine API")
    app.include_router(health_api)
    app.include_router(centroid_api)
    return app
