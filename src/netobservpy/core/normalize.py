"""Conversion of backend replies into the uniform QueryResponse."""

import json
import logging
from collections.abc import Iterable

from netobservpy.core.errors import BackendUnavailable, InternalError
from netobservpy.core.models import (
    BackendResult,
    ErrorEnvelope,
    Matrix,
    QueryResponse,
    ResultType,
)

logger = logging.getLogger(__name__)

_FALLBACK_ERROR_BODY = b'{"Message":"Internal Server Error"}'


def normalize_matrix(result: BackendResult) -> QueryResponse:
    """Re-emit a range query result as a matrix response.

    Raises:
        InternalError: if the backend returned anything but a matrix.
    """
    if not isinstance(result, Matrix):
        raise InternalError(f"QueryMatrix: wrong return type: {type(result).__name__}")
    return QueryResponse(result_type=ResultType.MATRIX, series=tuple(result.series))


def normalize_label_values(values: Iterable[str]) -> list[str]:
    """Distinct label values; order is not significant."""
    return list(dict.fromkeys(values))


def loki_error_message(body: bytes, status_code: int) -> str:
    """Extract the error message of a failed log backend call.

    Always returns a non-empty message mentioning the status code.
    """
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        payload = None
    if not isinstance(payload, dict) or not all(
        isinstance(v, str) for v in payload.values()
    ):
        return f"Unknown error from Loki - cannot unmarshal (code: {status_code})"
    message = payload.get("message")
    if message is None:
        return f"Unknown error from Loki - no message found (code: {status_code})"
    return f"Error from Loki (code: {status_code}): {message}"


def normalize_log_payload(body: bytes, status_code: int) -> QueryResponse:
    """Pass a successful log backend payload through unchanged.

    Raises:
        BackendUnavailable: for any non-200 reply, with the extracted message.
    """
    if status_code != 200:
        raise BackendUnavailable(loki_error_message(body, status_code))
    return QueryResponse(result_type=ResultType.RAW, raw=body)


def encode_error(status_code: int, message: str) -> tuple[int, bytes]:
    """Serialize an error envelope.

    Returns:
        The status code to send and the body. If the envelope cannot be
        serialized, a 500 with a generic body is returned instead.
    """
    try:
        return status_code, ErrorEnvelope(message).to_json()
    except (TypeError, ValueError):
        logger.exception(
            "Marshalling error while responding an error (message was: %r)", message
        )
        return 500, _FALLBACK_ERROR_BODY
