"""netobservpy - query proxy between a network observability console and Loki/Prometheus."""

from netobservpy.adapters.frameworks.asgi import create_app, create_asgi_app
from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage
from netobservpy.config import Config, load_config

__version__ = "0.1.0"

__all__ = [
    "Config",
    "InMemoryMetricsStorage",
    "create_app",
    "create_asgi_app",
    "load_config",
]
