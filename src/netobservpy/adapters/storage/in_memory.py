"""In-memory storage adapter for the proxy's own metrics."""

import threading
from collections.abc import AsyncIterable

from netobservpy.core.models import MetricSample

_SeriesKey = tuple[str, tuple[tuple[str, str], ...]]


class InMemoryMetricsStorage:
    """In-memory implementation of MetricsStoragePort.

    Written samples are added to the running total of their series, which
    makes counters and histogram buckets cumulative. The totals are shared
    by every request handler, so updates are guarded by a lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._series: dict[_SeriesKey, MetricSample] = {}

    def add(self, sample: MetricSample) -> None:
        """Add a sample to its series (thread-safe, non-async)."""
        key = (sample.name, tuple(sorted(sample.labels.items())))
        with self._lock:
            current = self._series.get(key)
            total = sample.value if current is None else current.value + sample.value
            self._series[key] = MetricSample(
                name=sample.name,
                timestamp=sample.timestamp,
                value=total,
                labels=dict(sample.labels),
            )

    async def write(self, sample: MetricSample) -> None:
        """Write a metric sample to storage."""
        self.add(sample)

    def snapshot(self) -> list[MetricSample]:
        """Current totals, in order of first write."""
        with self._lock:
            return list(self._series.values())

    async def scrape(self) -> AsyncIterable[MetricSample]:
        """Scrape all current metric samples."""
        for sample in self.snapshot():
            yield sample

    def value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current total of one series, 0.0 if it was never written."""
        key = (name, tuple(sorted((labels or {}).items())))
        with self._lock:
            sample = self._series.get(key)
        return 0.0 if sample is None else sample.value

    def reset(self) -> None:
        with self._lock:
            self._series.clear()
