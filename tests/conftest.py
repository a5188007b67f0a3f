"""Shared test fixtures for all test modules."""

import json
from pathlib import Path

import httpx
import pytest

from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage
from netobservpy.config import Config, LokiConfig, PrometheusConfig
from tests.helpers import MATRIX_DATA, prometheus_success

LOKI_URL = "http://loki.test:3100"
PROMETHEUS_URL = "http://prometheus.test:9090"


@pytest.fixture
def metrics_storage() -> InMemoryMetricsStorage:
    """Fixture providing an empty metrics storage."""
    return InMemoryMetricsStorage()


@pytest.fixture
def config() -> Config:
    """Configuration pointing at fake backends."""
    return Config(
        loki=LokiConfig(url=LOKI_URL, timeout=5.0),
        prometheus=PrometheusConfig(url=PROMETHEUS_URL, timeout=5.0),
    )


@pytest.fixture
def matrix_body() -> dict:
    """Prometheus success envelope holding a two-series matrix."""
    return prometheus_success(MATRIX_DATA)


@pytest.fixture
def loki_payload() -> bytes:
    """A Loki streams payload with irregular spacing, to check byte identity."""
    return json.dumps(
        {
            "status": "success",
            "data": {
                "resultType": "streams",
                "result": [
                    {
                        "stream": {"app": "netobserv-flowcollector"},
                        "values": [["1000000000000", '{"Bytes":42}']],
                    }
                ],
            },
        },
        indent=1,
    ).encode()


@pytest.fixture
def token_file(tmp_path: Path) -> Path:
    """A token file with a trailing newline, as mounted secrets usually have."""
    path = tmp_path / "token"
    path.write_text("file-token\n")
    return path


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(config, metrics_storage)
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
