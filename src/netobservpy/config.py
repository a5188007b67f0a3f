"""Proxy configuration, loaded from a YAML file.

Example::

    server:
      host: 0.0.0.0
      port: 9001
      log_level: info
    loki:
      url: http://loki:3100
      timeout: 30s
    prometheus:
      url: https://thanos-querier:9091
      timeout: 30s
      skip_tls: false
      ca_path: /var/run/secrets/ca.crt
      forward_user_token: true
      token_path: ""
    query:
      limit: 100
      step_seconds: 60
"""

import logging
import os
import re
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    field_validator,
)

from netobservpy.core.errors import ConfigurationError
from netobservpy.core.query.defaults import QueryDefaults

logger = logging.getLogger(__name__)

_DURATION = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)?$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: Any) -> float:
    """Parse a duration given as seconds or as a "30s"/"2m"/"500ms" string."""
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration: {value!r}")
    if isinstance(value, int | float):
        return float(value)
    match = _DURATION.match(str(value).strip())
    if match is None:
        raise ConfigurationError(f"invalid duration: {value!r}")
    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class _BackendSection(_Section):
    timeout: float = 30.0

    @field_validator("timeout", mode="before")
    @classmethod
    def _parse_timeout(cls, value: Any) -> float:
        try:
            return parse_duration(value)
        except ConfigurationError as e:
            raise ValueError(e.message) from e


class ServerConfig(_Section):
    host: str = "0.0.0.0"
    port: StrictInt = 9001
    log_level: str = "info"


class LokiConfig(_BackendSection):
    """Log backend connection.

    Attributes:
        url: Base URL of the Loki HTTP API.
        timeout: Request timeout, in seconds.
    """

    url: str = "http://localhost:3100"


class PrometheusConfig(_BackendSection):
    """Metrics backend connection and authentication.

    Attributes:
        url: Base URL of the Prometheus HTTP API.
        timeout: Request timeout, in seconds.
        skip_tls: Disable certificate verification.
        ca_path: CA bundle used to verify the backend certificate.
        forward_user_token: Forward the caller's bearer token.
        token_path: File holding a static bearer token, read on every call.
    """

    url: str = "http://localhost:9090"
    skip_tls: StrictBool = False
    ca_path: str = ""
    forward_user_token: StrictBool = False
    token_path: str = ""


class Config(_Section):
    server: ServerConfig = Field(default_factory=ServerConfig)
    loki: LokiConfig = Field(default_factory=LokiConfig)
    prometheus: PrometheusConfig = Field(default_factory=PrometheusConfig)
    query: QueryDefaults = Field(default_factory=QueryDefaults)

    @field_validator("server", "loki", "prometheus", "query", mode="before")
    @classmethod
    def _empty_section(cls, value: Any) -> Any:
        # "loki:" with nothing under it parses as None
        return {} if value is None else value


def config_from_dict(raw: dict[str, Any] | None) -> Config:
    """Build a Config from an already parsed mapping.

    Raises:
        ConfigurationError: on unknown keys or wrongly typed values.
    """
    try:
        return Config(**(raw or {}))
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


def load_config(path: str | None = None) -> Config:
    """Load the configuration file.

    Args:
        path: YAML file to read. Defaults to the CONFIG_FILE environment
            variable; without either, built-in defaults are used.

    Raises:
        ConfigurationError: if the file cannot be read or parsed.
    """
    path = path or os.environ.get("CONFIG_FILE")
    if not path:
        logger.info("No configuration file given, using defaults")
        return Config()
    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cannot parse configuration file {path}: {e}") from e
    if raw is not None and not isinstance(raw, dict):
        raise ConfigurationError(f"configuration file {path} must hold a mapping")
    config = config_from_dict(raw)
    logger.info("Loaded configuration from: %s", path)
    return config
