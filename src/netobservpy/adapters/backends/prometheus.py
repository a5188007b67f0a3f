"""Prometheus HTTP API client and the metrics query executor."""

import logging
import time
from collections.abc import Sequence
from http import HTTPStatus
from typing import Any

import httpx

from netobservpy.core.errors import (
    BackendAPIError,
    BackendUnavailable,
    InternalError,
    ProxyError,
    classify_backend_error,
    error_for_status,
)
from netobservpy.core.metrics import observe_backend_call
from netobservpy.core.models import (
    BackendResult,
    Matrix,
    PromQuery,
    QueryResponse,
    Sample,
    Scalar,
    Series,
    Vector,
    format_number,
)
from netobservpy.core.normalize import normalize_label_values, normalize_matrix
from netobservpy.core.ports import MetricsBackendPort, MetricsStoragePort

logger = logging.getLogger(__name__)

BACKEND = "prometheus"
QUERY_RANGE_PATH = "/api/v1/query_range"
LABEL_VALUES_PATH = "/api/v1/label/{label}/values"
LABEL_VALUES_LOOKBACK = 3 * 3600.0

# Status codes for which the API answers with a JSON error envelope
_API_ERROR_CODES = frozenset({400, 422, 503})


def _parse_sample(pair: Any) -> Sample:
    timestamp, value = pair
    return Sample(timestamp=float(timestamp), value=float(value))


def _parse_series(item: dict[str, Any], many: bool) -> Series:
    if many:
        samples = tuple(_parse_sample(p) for p in item.get("values") or [])
    else:
        samples = (_parse_sample(item["value"]),)
    return Series(metric=dict(item.get("metric") or {}), samples=samples)


def parse_result(data: Any) -> BackendResult:
    """Decode the ``data`` member of a query response.

    Raises:
        InternalError: if the data does not match its declared result type.
    """
    try:
        result_type = data["resultType"]
        result = data["result"]
        if result_type == "matrix":
            return Matrix(tuple(_parse_series(item, many=True) for item in result))
        if result_type == "vector":
            return Vector(tuple(_parse_series(item, many=False) for item in result))
        if result_type == "scalar":
            timestamp, value = result
            return Scalar(Sample(float(timestamp), float(value)))
    except (KeyError, TypeError, ValueError) as e:
        raise InternalError(f"cannot decode Prometheus result: {e}") from e
    raise InternalError(f"unknown Prometheus result type: {result_type!r}")


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


def _error_type_and_message(status_code: int) -> tuple[str, str]:
    if status_code // 100 == 4:
        return "client", f"client error: {status_code}"
    if status_code // 100 == 5:
        return "server", f"server error: {status_code}"
    return "bad_response", f"bad response code {status_code}"


class PrometheusClient:
    """Thin async client for the Prometheus HTTP API.

    Args:
        client: HTTP client already configured with base URL, TLS and auth.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _get(self, path: str, params: dict[str, Any]) -> tuple[Any, list[str]]:
        """GET an API endpoint and unwrap the response envelope.

        Raises:
            BackendAPIError: for any error reported by the API.
            httpx.HTTPError: for transport failures and timeouts.
        """
        response = await self._client.get(path, params=params)
        code = response.status_code
        if code // 100 != 2 and code not in _API_ERROR_CODES:
            error_type, message = _error_type_and_message(code)
            raise BackendAPIError(error_type, message, detail=response.text)

        try:
            body = response.json()
        except ValueError as e:
            raise BackendAPIError("bad_response", f"cannot decode body: {e}") from e
        if not isinstance(body, dict):
            raise BackendAPIError("bad_response", "response body is not an object")

        is_error = body.get("status") == "error"
        if (code in _API_ERROR_CODES) != is_error:
            raise BackendAPIError("bad_response", "inconsistent body for response code")
        if is_error:
            raise BackendAPIError(
                str(body.get("errorType", "")), str(body.get("error", ""))
            )
        return body.get("data"), list(body.get("warnings") or [])

    async def query_range(self, query: PromQuery) -> tuple[BackendResult, list[str]]:
        data, warnings = await self._get(QUERY_RANGE_PATH, query.params())
        return parse_result(data), warnings

    async def label_values(
        self, label: str, match: Sequence[str], start: float, end: float
    ) -> tuple[list[str], list[str]]:
        params: dict[str, Any] = {
            "start": format_number(start),
            "end": format_number(end),
        }
        if match:
            params["match[]"] = list(match)
        data, warnings = await self._get(LABEL_VALUES_PATH.format(label=label), params)
        if not isinstance(data, list):
            raise InternalError("label values: expected a list")
        return [str(v) for v in data], warnings


async def execute_query_range(
    backend: MetricsBackendPort,
    query: PromQuery,
    storage: MetricsStoragePort,
) -> BackendResult:
    """Run a range query, classifying failures into caller status codes.

    The call is recorded in ``storage`` whatever its outcome, cancellation
    included.

    Raises:
        BackendUnauthorized: backend client error mentioning 401.
        BackendForbidden: backend client error mentioning 403.
        BackendUnavailable: any other backend or transport failure.
        InternalError: undecodable result.
    """
    code: int = HTTPStatus.SERVICE_UNAVAILABLE
    started_at = time.perf_counter()
    try:
        logger.debug(
            "executeQueryRange: [%s, %s] step=%ss; promQL=%s",
            query.start,
            query.end,
            query.step_seconds,
            query.promql,
        )
        try:
            result, warnings = await backend.query_range(query)
        except ProxyError as e:
            code = e.status_code
            raise
        except (BackendAPIError, httpx.HTTPError) as e:
            code = classify_backend_error(e)
            message = f"error from Prometheus query: {_describe(e)}"
            raise error_for_status(code, message) from e
        if warnings:
            logger.info("executeQueryRange warnings: %s", warnings)
        code = HTTPStatus.OK
        return result
    finally:
        await observe_backend_call(storage, BACKEND, code, started_at)


async def query_matrix(
    backend: MetricsBackendPort,
    query: PromQuery,
    storage: MetricsStoragePort,
) -> QueryResponse:
    """Run a range query that must return a matrix."""
    try:
        result = await execute_query_range(backend, query, storage)
        return normalize_matrix(result)
    except ProxyError as e:
        logger.error("Error in QueryMatrix: %s", e.message)
        raise


async def get_label_values(
    backend: MetricsBackendPort,
    label: str,
    match: Sequence[str],
    storage: MetricsStoragePort,
    now: float | None = None,
) -> list[str]:
    """Distinct values of ``label`` over the last three hours.

    Raises:
        BackendUnavailable: for every failure.
    """
    end = time.time() if now is None else now
    start = end - LABEL_VALUES_LOOKBACK
    code: int = HTTPStatus.SERVICE_UNAVAILABLE
    started_at = time.perf_counter()
    logger.debug("GetLabelValues: %s", label)
    try:
        try:
            values, warnings = await backend.label_values(label, match, start, end)
        except (ProxyError, BackendAPIError, httpx.HTTPError) as e:
            raise BackendUnavailable(
                f"error from Prometheus label values: {_describe(e)}"
            ) from e
        if warnings:
            logger.info("GetLabelValues warnings: %s", warnings)
        code = HTTPStatus.OK
        return normalize_label_values(values)
    finally:
        await observe_backend_call(storage, BACKEND, code, started_at)
