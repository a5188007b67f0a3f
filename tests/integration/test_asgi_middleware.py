"""Integration tests for the request logging and metrics middleware."""

import logging

import pytest

from netobservpy.adapters.frameworks.asgi import (
    ASGIObservabilityMiddleware,
    Receive,
    Scope,
    Send,
    _extract_request_id,
    _get_log_level_for_status,
)
from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage

LOGGER = "netobservpy.adapters.frameworks.asgi"


def make_app(status: int = 200, body: bytes = b"ok"):
    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await send({"type": "http.response.start", "status": status, "headers": []})
        await send({"type": "http.response.body", "body": body})

    return app


async def failing_app(scope: Scope, receive: Receive, send: Send) -> None:
    raise RuntimeError("boom")


class TestHelpers:
    @pytest.mark.asgi
    @pytest.mark.tier(1)
    @pytest.mark.parametrize(
        ("status", "level"),
        [(200, logging.INFO), (302, logging.INFO), (404, logging.WARNING), (503, logging.ERROR)],
    )
    def test_log_level_for_status(self, status: int, level: int) -> None:
        assert _get_log_level_for_status(status) == level

    @pytest.mark.asgi
    @pytest.mark.tier(1)
    def test_request_id_from_header(self) -> None:
        scope = {"headers": [(b"x-request-id", b"abc-123")]}
        assert _extract_request_id(scope) == "abc-123"

    @pytest.mark.asgi
    @pytest.mark.tier(1)
    def test_request_id_generated(self) -> None:
        assert len(_extract_request_id({"headers": []})) == 36


class TestMiddleware:
    @pytest.mark.asgi
    @pytest.mark.tier(2)
    async def test_records_request_metrics(
        self, asgi_test_client, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        app = ASGIObservabilityMiddleware(make_app(), metrics_storage)

        async with asgi_test_client(app) as client:
            await client.get("/api/loki/flows")
            await client.get("/api/loki/flows")

        assert metrics_storage.value(
            "http_requests_total",
            {"method": "GET", "path": "/api/loki/flows", "status": "200"},
        ) == 2.0
        assert metrics_storage.value(
            "http_request_duration_seconds_count",
            {"method": "GET", "path": "/api/loki/flows"},
        ) == 2.0

    @pytest.mark.asgi
    @pytest.mark.tier(2)
    async def test_logs_one_line_per_request(
        self,
        asgi_test_client,
        metrics_storage: InMemoryMetricsStorage,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        app = ASGIObservabilityMiddleware(make_app(status=503), metrics_storage)

        with caplog.at_level(logging.INFO, logger=LOGGER):
            async with asgi_test_client(app) as client:
                await client.get(
                    "/api/prometheus/topology", headers={"X-Request-ID": "req-1"}
                )

        records = [r for r in caplog.records if r.name == LOGGER]
        assert len(records) == 1
        assert records[0].levelno == logging.ERROR
        assert "GET /api/prometheus/topology 503" in records[0].getMessage()
        assert "request_id=req-1" in records[0].getMessage()

    @pytest.mark.asgi
    @pytest.mark.tier(2)
    async def test_excluded_paths(
        self, asgi_test_client, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        app = ASGIObservabilityMiddleware(
            make_app(), metrics_storage, exclude_paths=["/metrics", "/internal/*"]
        )

        async with asgi_test_client(app) as client:
            await client.get("/metrics")
            await client.get("/internal/debug")

        assert metrics_storage.snapshot() == []

    @pytest.mark.asgi
    @pytest.mark.tier(2)
    async def test_exception_is_recorded_as_500(
        self, asgi_test_client, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        app = ASGIObservabilityMiddleware(failing_app, metrics_storage)

        async with asgi_test_client(app) as client:
            with pytest.raises(RuntimeError):
                await client.get("/api/loki/flows")

        assert metrics_storage.value(
            "http_requests_total",
            {"method": "GET", "path": "/api/loki/flows", "status": "500"},
        ) == 1.0
