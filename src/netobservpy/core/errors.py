"""Error taxonomy shared by the query compiler, backends and HTTP boundary.

Each error carries the HTTP status code it maps to. The HTTP boundary turns
any of them into the same ``{"Message": ...}`` envelope.
"""

from http import HTTPStatus


class ProxyError(Exception):
    """Base class for errors surfaced to callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidParameter(ProxyError):
    """Malformed caller input; raised before any network call."""

    status_code = HTTPStatus.BAD_REQUEST


class BackendUnavailable(ProxyError):
    """Transport failure or generic backend error."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE


class BackendUnauthorized(ProxyError):
    status_code = HTTPStatus.UNAUTHORIZED


class BackendForbidden(ProxyError):
    status_code = HTTPStatus.FORBIDDEN


class InternalError(ProxyError):
    """Backend answered with an unexpected result shape."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class ConfigurationError(ProxyError):
    """Unusable configuration, e.g. an unreadable token file."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


class BackendAPIError(Exception):
    """Structured error reported by a backend API.

    Attributes:
        error_type: Backend error category ("client", "server", "bad_data",
            "execution", "timeout", "canceled", "bad_response", ...).
        message: Free-text message from the backend.
        detail: Raw response body, when available.
    """

    def __init__(self, error_type: str, message: str, detail: str = "") -> None:
        super().__init__(f"{error_type}: {message}")
        self.error_type = error_type
        self.message = message
        self.detail = detail


CLIENT_ERROR = "client"

_ERRORS_BY_STATUS: dict[int, type[ProxyError]] = {
    HTTPStatus.BAD_REQUEST: InvalidParameter,
    HTTPStatus.UNAUTHORIZED: BackendUnauthorized,
    HTTPStatus.FORBIDDEN: BackendForbidden,
    HTTPStatus.INTERNAL_SERVER_ERROR: InternalError,
    HTTPStatus.SERVICE_UNAVAILABLE: BackendUnavailable,
}


def classify_backend_error(exc: BaseException) -> int:
    """Map a failed backend call to the status code returned to callers.

    Only client-type backend errors are inspected; the 401/403 markers are
    matched as substrings of the backend message. Everything else,
    including transport errors and timeouts, is 503.
    """
    if isinstance(exc, BackendAPIError) and exc.error_type == CLIENT_ERROR:
        if "401" in exc.message:
            return HTTPStatus.UNAUTHORIZED
        if "403" in exc.message:
            return HTTPStatus.FORBIDDEN
    return HTTPStatus.SERVICE_UNAVAILABLE


def error_for_status(status_code: int, message: str) -> ProxyError:
    """Build the ProxyError subclass matching a status code."""
    error_class = _ERRORS_BY_STATUS.get(status_code, BackendUnavailable)
    return error_class(message)
