"""Clients for the Loki and Prometheus HTTP APIs."""

from netobservpy.adapters.backends.loki import LokiClient, fetch_logs
from netobservpy.adapters.backends.prometheus import (
    PrometheusClient,
    execute_query_range,
    get_label_values,
    query_matrix,
)
from netobservpy.adapters.backends.transport import build_client, build_loki_client

__all__ = [
    "LokiClient",
    "PrometheusClient",
    "build_client",
    "build_loki_client",
    "execute_query_range",
    "fetch_logs",
    "get_label_values",
    "query_matrix",
]
