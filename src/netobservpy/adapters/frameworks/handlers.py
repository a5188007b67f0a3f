"""Request handlers shared by the framework adapters (ASGI, FastAPI).

Handlers take already parsed query parameters and return a
``HandlerResponse``; they never raise. Every ProxyError becomes the
``{"Message": ...}`` envelope with the status code of its class.
"""

import json
import logging
import re
import time
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass

import httpx

from netobservpy.adapters.backends.loki import LokiClient, fetch_logs
from netobservpy.adapters.backends.prometheus import (
    PrometheusClient,
    get_label_values,
    query_matrix,
)
from netobservpy.adapters.backends.transport import build_client, build_loki_client
from netobservpy.config import Config
from netobservpy.core.encoding.prometheus import encode_current
from netobservpy.core.errors import InvalidParameter, ProxyError
from netobservpy.core.normalize import encode_error
from netobservpy.core.ports import MetricsStoragePort
from netobservpy.core.query import (
    FlowQueryBuilder,
    PromTopologyBuilder,
    QueryParameters,
    TopologyQueryBuilder,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

_LABEL_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

QueryParams = Mapping[str, Sequence[str]]


@dataclass(frozen=True)
class HandlerResponse:
    status: int
    body: bytes
    content_type: str = JSON_CONTENT_TYPE


def error_response(status_code: int, message: str) -> HandlerResponse:
    status, body = encode_error(status_code, message)
    return HandlerResponse(status=status, body=body)


async def _guard(
    name: str, handler: Callable[[], Awaitable[HandlerResponse]]
) -> HandlerResponse:
    """Run a handler, turning any failure into an error envelope."""
    try:
        return await handler()
    except ProxyError as e:
        logger.warning("%s failed (%s): %s", name, int(e.status_code), e.message)
        return error_response(e.status_code, e.message)
    except Exception:
        logger.exception("Unexpected error in %s", name)
        return error_response(500, "Internal Server Error")


class ProxyHandlers:
    """Compile, execute and normalize one request per call.

    Args:
        config: Proxy configuration.
        storage: Storage for backend call metrics.
        loki_transport: Transport override for the log backend.
        prometheus_transport: Transport override for the metrics backend.
        clock: Returns the current epoch time in seconds.
    """

    def __init__(
        self,
        config: Config,
        storage: MetricsStoragePort,
        loki_transport: httpx.AsyncBaseTransport | None = None,
        prometheus_transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.storage = storage
        self._loki_transport = loki_transport
        self._prometheus_transport = prometheus_transport
        self._clock = clock

    async def _query_loki(self, builder: FlowQueryBuilder) -> HandlerResponse:
        query = builder.build()
        async with build_loki_client(self.config.loki, self._loki_transport) as client:
            response = await fetch_logs(LokiClient(client), query, self.storage)
        return HandlerResponse(status=200, body=response.to_json())

    async def get_flows(self, params: QueryParams) -> HandlerResponse:
        """Raw flow records from the log backend."""

        async def handle() -> HandlerResponse:
            parsed = QueryParameters.from_query(params)
            return await self._query_loki(FlowQueryBuilder(parsed, self.config.query))

        return await _guard("GetFlows", handle)

    async def get_topology(self, params: QueryParams) -> HandlerResponse:
        """Top-K topology aggregation from the log backend."""

        async def handle() -> HandlerResponse:
            parsed = QueryParameters.from_query(params)
            return await self._query_loki(
                TopologyQueryBuilder(parsed, self.config.query)
            )

        return await _guard("GetTopology", handle)

    async def get_metrics_topology(
        self, params: QueryParams, authorization: str | None
    ) -> HandlerResponse:
        """Top-K topology aggregation from the metrics backend."""

        async def handle() -> HandlerResponse:
            parsed = QueryParameters.from_query(params)
            query = PromTopologyBuilder(parsed, self.config.query).build(self._clock())
            async with build_client(
                self.config.prometheus, authorization, self._prometheus_transport
            ) as client:
                response = await query_matrix(
                    PrometheusClient(client), query, self.storage
                )
            return HandlerResponse(status=200, body=response.to_json())

        return await _guard("GetMetricsTopology", handle)

    async def get_label_values(
        self, label: str, params: QueryParams, authorization: str | None
    ) -> HandlerResponse:
        """Distinct values of one label on the metrics backend."""

        async def handle() -> HandlerResponse:
            if not _LABEL_NAME.match(label):
                raise InvalidParameter(f"invalid label name: {label}")
            match = list(params.get("match[]", []))
            async with build_client(
                self.config.prometheus, authorization, self._prometheus_transport
            ) as client:
                values = await get_label_values(
                    PrometheusClient(client),
                    label,
                    match,
                    self.storage,
                    now=self._clock(),
                )
            return HandlerResponse(status=200, body=json.dumps(values).encode())

        return await _guard("GetLabelValues", handle)

    async def get_own_metrics(self) -> HandlerResponse:
        """The proxy's own metrics in Prometheus text format."""

        async def handle() -> HandlerResponse:
            body = await encode_current(self.storage.scrape())
            return HandlerResponse(
                status=200, body=body.encode(), content_type=PROMETHEUS_CONTENT_TYPE
            )

        return await _guard("GetMetrics", handle)
