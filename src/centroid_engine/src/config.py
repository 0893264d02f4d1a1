import os
from dataclasses import dataclass
from typing import Optional

from pyaml_env import parse_config


class CentroidEngineConfig:
    @dataclass
    class App:
        server_port: int
        log_level: str = "INFO"

        def __post_init__(self):
            self.server_port = int(self.server_port)

    @dataclass
    class Centroid:
        default_metric: str = "euclidean"
        init_capacity: int = 0
        payload_ttl: Optional[float] = None

        def __post_init__(self):
            self.init_capacity = int(self.init_capacity)
            if self.payload_ttl is not None:
                self.payload_ttl = float(self.payload_ttl)

    def __init__(self, version, app, centroid=None):
        self.version = version
        self.app = CentroidEngineConfig.App(**app)
        self.centroid = CentroidEngineConfig.Centroid(**(centroid or {}))


current_dir = os.path.dirname(os.path.abspath(__file__))
config_path = os.path.join(current_dir, '..', 'config.yaml')
config = CentroidEngineConfig(**parse_config(path=config_path))
