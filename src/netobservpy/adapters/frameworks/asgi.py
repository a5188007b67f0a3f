"""ASGI application serving the proxy endpoints.

This adapter is framework-agnostic and runs on any ASGI server (uvicorn,
hypercorn, daphne) without FastAPI.

Routes:
    /api/loki/flows                       - raw flow records (Loki pass-through)
    /api/loki/topology                    - topology aggregation from Loki
    /api/prometheus/topology              - topology aggregation from Prometheus
    /api/prometheus/label/<name>/values   - label values from Prometheus
    /metrics                              - the proxy's own metrics
"""

import fnmatch
import logging
import time
import uuid
from collections.abc import Callable, Coroutine
from typing import Any
from urllib.parse import parse_qs

import httpx

from netobservpy.adapters.frameworks.handlers import (
    HandlerResponse,
    ProxyHandlers,
    error_response,
)
from netobservpy.config import Config
from netobservpy.core.metrics import counter, histogram
from netobservpy.core.ports import MetricsStoragePort

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]

_LABEL_VALUES_PREFIX = "/api/prometheus/label/"
_LABEL_VALUES_SUFFIX = "/values"


def _parse_query_params(scope: Scope) -> dict[str, list[str]]:
    """Parse query string from ASGI scope into parameter dictionary.

    Args:
        scope: ASGI scope dictionary containing request metadata.

    Returns:
        Dictionary mapping parameter names to lists of values.
        Returns empty dict if query_string is missing or empty.
    """
    query_string = scope.get("query_string", b"").decode(errors="replace")
    return parse_qs(query_string)


def _get_header(scope: Scope, header_name: str) -> str | None:
    """Case-insensitive lookup of a request header."""
    header_bytes = header_name.lower().encode()
    headers: list[tuple[bytes, bytes]] = scope.get("headers", [])
    for name, value in headers:
        if name.lower() == header_bytes:
            return value.decode("utf-8", errors="replace")
    return None


def _extract_request_id(scope: Scope, header_name: str = "X-Request-ID") -> str:
    """Extract or generate a request ID from ASGI scope headers.

    Searches for the specified header (case-insensitive). If not found,
    generates a new UUID.
    """
    return _get_header(scope, header_name) or str(uuid.uuid4())


def _get_log_level_for_status(status_code: int) -> int:
    """Map an HTTP status code to a logging level.

    - 2xx -> INFO
    - 4xx -> WARNING
    - 5xx -> ERROR
    - Other -> INFO
    """
    if 400 <= status_code < 500:
        return logging.WARNING
    if 500 <= status_code < 600:
        return logging.ERROR
    return logging.INFO


async def _send_response(send: Send, response: HandlerResponse) -> None:
    """Send an HTTP response with headers and body."""
    headers = [(b"content-type", response.content_type.encode())]
    await send(
        {"type": "http.response.start", "status": response.status, "headers": headers}
    )
    await send({"type": "http.response.body", "body": response.body})


class ASGIObservabilityMiddleware:
    """ASGI middleware that logs each request and records request metrics.

    Args:
        app: The ASGI application to wrap.
        metrics_storage: Storage for request metrics (optional).
        exclude_paths: Paths to exclude from logging/metrics. Supports exact
            matches and wildcard patterns (e.g., "/internal/*").
        request_id_header: Header to read the request ID from.
    """

    def __init__(
        self,
        app: ASGIApp,
        metrics_storage: MetricsStoragePort | None,
        exclude_paths: list[str] | None = None,
        request_id_header: str = "X-Request-ID",
    ) -> None:
        self.app = app
        self.metrics_storage = metrics_storage
        self.exclude_paths = exclude_paths or []
        self.request_id_header = request_id_header
        self.request_counter_name = "http_requests_total"
        self.request_histogram_name = "http_request_duration_seconds"

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    async def _write_metrics(
        self, scope: Scope, status_code: int, duration: float
    ) -> None:
        if self.metrics_storage is None:
            return
        await self.metrics_storage.write(
            counter(
                self.request_counter_name,
                labels={
                    "method": scope["method"],
                    "path": scope["path"],
                    "status": str(status_code),
                },
            )
        )
        for sample in histogram(
            self.request_histogram_name,
            duration,
            labels={"method": scope["method"], "path": scope["path"]},
        ):
            await self.metrics_storage.write(sample)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        request_id = _extract_request_id(scope, self.request_id_header)
        captured: dict[str, Any] = {"status": None, "body_size": 0}

        async def wrapped_send(message: dict[str, Any]) -> None:
            if message["type"] == "http.response.start":
                captured["status"] = message["status"]
            elif message["type"] == "http.response.body":
                captured["body_size"] += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        except Exception:
            captured["status"] = 500
            raise
        finally:
            duration = time.perf_counter() - start_time
            if not self._path_excluded(scope["path"]):
                status = captured["status"] or 0
                logger.log(
                    _get_log_level_for_status(status),
                    "%s %s %s (%d bytes, %.1f ms) request_id=%s",
                    scope["method"],
                    scope["path"],
                    status,
                    captured["body_size"],
                    duration * 1000,
                    request_id,
                )
                if captured["status"] is not None:
                    await self._write_metrics(scope, captured["status"], duration)


def create_asgi_app(
    config: Config,
    metrics_storage: MetricsStoragePort,
    loki_transport: httpx.AsyncBaseTransport | None = None,
    prometheus_transport: httpx.AsyncBaseTransport | None = None,
) -> ASGIApp:
    """Create the proxy ASGI app.

    Args:
        config: Proxy configuration.
        metrics_storage: Storage for backend call metrics, served at /metrics.
        loki_transport: Transport override for the log backend.
        prometheus_transport: Transport override for the metrics backend.

    Returns:
        ASGI application callable.
    """
    handlers = ProxyHandlers(
        config,
        metrics_storage,
        loki_transport=loki_transport,
        prometheus_transport=prometheus_transport,
    )

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            return

        path = scope["path"]
        if scope["method"] != "GET":
            await _send_response(send, error_response(405, "Method Not Allowed"))
            return

        if path == "/api/loki/flows":
            response = await handlers.get_flows(_parse_query_params(scope))
        elif path == "/api/loki/topology":
            response = await handlers.get_topology(_parse_query_params(scope))
        elif path == "/api/prometheus/topology":
            response = await handlers.get_metrics_topology(
                _parse_query_params(scope), _get_header(scope, "Authorization")
            )
        elif path.startswith(_LABEL_VALUES_PREFIX) and path.endswith(
            _LABEL_VALUES_SUFFIX
        ):
            label = path[len(_LABEL_VALUES_PREFIX) : -len(_LABEL_VALUES_SUFFIX)]
            response = await handlers.get_label_values(
                label, _parse_query_params(scope), _get_header(scope, "Authorization")
            )
        elif path == "/metrics":
            response = await handlers.get_own_metrics()
        else:
            response = error_response(404, "Not Found")
        await _send_response(send, response)

    return app


def create_app(
    config: Config,
    metrics_storage: MetricsStoragePort,
    loki_transport: httpx.AsyncBaseTransport | None = None,
    prometheus_transport: httpx.AsyncBaseTransport | None = None,
) -> ASGIApp:
    """Proxy app wrapped in the observability middleware."""
    return ASGIObservabilityMiddleware(
        create_asgi_app(config, metrics_storage, loki_transport, prometheus_transport),
        metrics_storage,
        exclude_paths=["/metrics"],
    )
