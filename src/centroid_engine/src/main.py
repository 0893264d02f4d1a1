import uvicorn

from centroid_engine.src.app import create_app
from centroid_engine.src.config import config
from centroid_engine.src.utils.logging_utils import configure_logger

configure_logger(config.app.log_level)
app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "centroid_engine.src.main:app",
        host="0.0.0.0",
        port=config.app.server_port,
        workers=1,
    )
