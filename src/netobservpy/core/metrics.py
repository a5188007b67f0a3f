"""Metric helper functions for creating MetricSample objects.

Samples are increments: storages add them up per (name, labels) series,
so a counter sample is "+value" and a histogram observation is "+1" on
every bucket it falls in.
"""

import time

from netobservpy.core.models import MetricSample
from netobservpy.core.ports import MetricsStoragePort

BACKEND_CALLS_TOTAL = "netobserv_backend_calls_total"
BACKEND_CALL_DURATION = "netobserv_backend_call_duration_seconds"


def counter(
    name: str,
    value: float = 1.0,
    labels: dict[str, str] | None = None,
) -> MetricSample:
    """Create a counter increment sample.

    Args:
        name: Metric name (e.g., "http_requests_total")
        value: Increment value (default: 1.0)
        labels: Optional dimension labels

    Returns:
        MetricSample with current timestamp
    """
    return MetricSample(
        name=name,
        timestamp=time.time(),
        value=value,
        labels=labels or {},
    )


DEFAULT_HISTOGRAM_BUCKETS = [0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10]


def histogram(
    name: str,
    value: float,
    labels: dict[str, str] | None = None,
    buckets: list[float] | None = None,
) -> list[MetricSample]:
    """Create histogram samples for a single observation.

    Args:
        name: Metric name (e.g., "http_request_duration_seconds")
        value: Observed value
        labels: Optional dimension labels
        buckets: Bucket boundaries (default: Prometheus standard buckets)

    Returns:
        List of MetricSample objects (bucket samples + sum + count)
    """
    timestamp = time.time()
    base_labels = labels or {}
    bucket_boundaries = buckets if buckets is not None else DEFAULT_HISTOGRAM_BUCKETS

    samples: list[MetricSample] = []

    for boundary in bucket_boundaries:
        samples.append(
            MetricSample(
                name=f"{name}_bucket",
                timestamp=timestamp,
                value=1.0 if value <= boundary else 0.0,
                labels={**base_labels, "le": str(boundary)},
            )
        )

    # +Inf always contains the observation
    samples.append(
        MetricSample(
            name=f"{name}_bucket",
            timestamp=timestamp,
            value=1.0,
            labels={**base_labels, "le": "+Inf"},
        )
    )
    samples.append(
        MetricSample(
            name=f"{name}_sum",
            timestamp=timestamp,
            value=value,
            labels=base_labels,
        )
    )
    samples.append(
        MetricSample(
            name=f"{name}_count",
            timestamp=timestamp,
            value=1.0,
            labels=base_labels,
        )
    )

    return samples


async def observe_backend_call(
    storage: MetricsStoragePort,
    backend: str,
    status_code: int,
    started_at: float,
) -> None:
    """Record one backend call, keyed by backend and resulting status code.

    Args:
        storage: Where samples are accumulated.
        backend: "loki" or "prometheus".
        status_code: Status code the call was classified as.
        started_at: ``time.perf_counter()`` value taken before the call.
    """
    elapsed = time.perf_counter() - started_at
    labels = {"backend": backend, "code": str(int(status_code))}
    await storage.write(counter(BACKEND_CALLS_TOTAL, labels=labels))
    for sample in histogram(BACKEND_CALL_DURATION, elapsed, labels=labels):
        await storage.write(sample)
