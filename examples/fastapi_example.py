"""Example FastAPI application embedding the proxy endpoints.

Run with:
    CONFIG_FILE=examples/config.yaml uvicorn examples.fastapi_example:app --reload

Endpoints:
    /api/loki/flows                       - raw flow records from Loki
    /api/loki/topology                    - top talkers from Loki
    /api/prometheus/topology              - top talkers from Prometheus
    /api/prometheus/label/<name>/values   - label values from Prometheus
    /metrics                              - proxy metrics (Prometheus text format)
    /healthz                              - liveness check
"""

from fastapi import FastAPI

from netobservpy.adapters.frameworks.fastapi import create_proxy_router
from netobservpy.adapters.frameworks.handlers import ProxyHandlers
from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage
from netobservpy.config import load_config

config = load_config()
metrics_storage = InMemoryMetricsStorage()

app = FastAPI(title="Network observability query proxy")
app.include_router(create_proxy_router(ProxyHandlers(config, metrics_storage)))


@app.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}
