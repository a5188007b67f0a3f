"""Authenticated HTTP clients for outbound backend calls.

A client is built for every request and closed at its end, so rotated
token files and per-user tokens never leak between requests.
"""

import logging
import ssl
from collections.abc import Generator
from pathlib import Path

import httpx

from netobservpy.config import LokiConfig, PrometheusConfig
from netobservpy.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

AUTH_HEADER = "Authorization"
BEARER_PREFIX = "Bearer "


class BearerAuth(httpx.Auth):
    """Adds ``Authorization: Bearer <token>`` to every request."""

    def __init__(self, token: str) -> None:
        self._token = token

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers[AUTH_HEADER] = BEARER_PREFIX + self._token
        yield request


def bearer_token(authorization: str | None) -> str | None:
    """Token of an inbound ``Authorization: Bearer`` header, if any."""
    if authorization and authorization.startswith(BEARER_PREFIX):
        token = authorization[len(BEARER_PREFIX) :]
        return token or None
    return None


def read_token_file(path: str) -> str:
    """Read a static token.

    Raises:
        ConfigurationError: if the file cannot be read.
    """
    try:
        return Path(path).read_text().strip()
    except OSError as e:
        raise ConfigurationError(
            f"failed to parse authorization path '{path}': {e}"
        ) from e


def resolve_auth(
    cfg: PrometheusConfig, authorization: str | None
) -> httpx.Auth | None:
    """Pick the authentication mode from configuration.

    With ``forward_user_token`` only the caller's bearer token is sent, and
    a caller without one gets no authentication. Otherwise the token file is
    used when configured.
    """
    if cfg.forward_user_token:
        token = bearer_token(authorization)
        if token is not None:
            return BearerAuth(token)
        logger.debug("Missing Authorization token in user request")
        return None
    if cfg.token_path:
        return BearerAuth(read_token_file(cfg.token_path))
    return None


def tls_verify(skip_tls: bool, ca_path: str) -> ssl.SSLContext | bool:
    if skip_tls:
        return False
    if ca_path:
        return ssl.create_default_context(cafile=ca_path)
    return True


def build_client(
    cfg: PrometheusConfig,
    authorization: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the client used for one call to the metrics backend.

    Args:
        cfg: Metrics backend configuration.
        authorization: Value of the inbound Authorization header.
        transport: Transport override (tests use ``httpx.MockTransport``).

    Raises:
        ConfigurationError: if the token file or CA bundle cannot be read.
    """
    auth = resolve_auth(cfg, authorization)
    try:
        verify = tls_verify(cfg.skip_tls, cfg.ca_path)
    except OSError as e:
        raise ConfigurationError(f"failed to load CA file '{cfg.ca_path}': {e}") from e
    return httpx.AsyncClient(
        base_url=cfg.url,
        auth=auth,
        verify=verify,
        timeout=httpx.Timeout(cfg.timeout),
        transport=transport,
    )


def build_loki_client(
    cfg: LokiConfig, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """Build the client used for one call to the log backend (no auth)."""
    return httpx.AsyncClient(
        base_url=cfg.url,
        timeout=httpx.Timeout(cfg.timeout),
        transport=transport,
    )
