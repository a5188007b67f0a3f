"""Port interfaces for storage and backend adapters.

These protocols define the contracts that adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from collections.abc import AsyncIterable, Sequence
from typing import Protocol, runtime_checkable

from netobservpy.core.models import BackendResult, CompiledQuery, MetricSample, PromQuery


@runtime_checkable
class MetricsStoragePort(Protocol):
    """Port for the proxy's own metrics.

    Adapters accumulate written samples per (name, labels) series and must
    accept writes from concurrently handled requests.
    Examples: InMemoryMetricsStorage.
    """

    async def write(self, sample: MetricSample) -> None:
        """Add a metric sample to its series."""
        ...

    def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape the accumulated value of every series."""
        ...


@runtime_checkable
class MetricsBackendPort(Protocol):
    """Port for a Prometheus-compatible HTTP API."""

    async def query_range(self, query: PromQuery) -> tuple[BackendResult, list[str]]:
        """Run a range query; returns the result and backend warnings."""
        ...

    async def label_values(
        self, label: str, match: Sequence[str], start: float, end: float
    ) -> tuple[list[str], list[str]]:
        """List the values of one label; returns values and warnings."""
        ...


@runtime_checkable
class LogBackendPort(Protocol):
    """Port for a Loki-compatible HTTP API."""

    async def query_range(self, query: CompiledQuery) -> tuple[bytes, int]:
        """Run a LogQL range query; returns the raw body and status code."""
        ...
