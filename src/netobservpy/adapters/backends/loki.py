"""Loki HTTP API client.

Loki replies are passed through to callers untouched; only failures are
interpreted.
"""

import logging
import time
from http import HTTPStatus

import httpx

from netobservpy.core.errors import BackendUnavailable
from netobservpy.core.metrics import observe_backend_call
from netobservpy.core.models import CompiledQuery, QueryResponse
from netobservpy.core.normalize import normalize_log_payload
from netobservpy.core.ports import LogBackendPort, MetricsStoragePort

logger = logging.getLogger(__name__)

BACKEND = "loki"
QUERY_RANGE_PATH = "/loki/api/v1/query_range"


class LokiClient:
    """Async client for the Loki query API.

    Args:
        client: HTTP client configured with the Loki base URL.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def query_range(self, query: CompiledQuery) -> tuple[bytes, int]:
        # TODO: forward authentication once Loki runs behind an auth proxy
        response = await self._client.get(QUERY_RANGE_PATH, params=query.params())
        return response.content, response.status_code


async def fetch_logs(
    backend: LogBackendPort,
    query: CompiledQuery,
    storage: MetricsStoragePort,
) -> QueryResponse:
    """Run a LogQL query and return its payload byte-for-byte.

    Raises:
        BackendUnavailable: on transport failure or any non-200 reply, with
            the message extracted from the Loki body.
    """
    code: int = HTTPStatus.SERVICE_UNAVAILABLE
    started_at = time.perf_counter()
    logger.debug("Loki query: %s", query.query)
    try:
        try:
            body, status = await backend.query_range(query)
        except httpx.HTTPError as e:
            raise BackendUnavailable(
                f"error from Loki query: {str(e) or type(e).__name__}"
            ) from e
        code = status
        if status != HTTPStatus.OK:
            logger.error("Loki query failed with code %s", status)
        return normalize_log_payload(body, status)
    finally:
        await observe_backend_call(storage, BACKEND, code, started_at)
