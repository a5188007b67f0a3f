"""Tests for metric helper functions and the accumulating storage."""

import threading
import time

import pytest

from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage
from netobservpy.core.metrics import (
    BACKEND_CALL_DURATION,
    BACKEND_CALLS_TOTAL,
    counter,
    histogram,
    observe_backend_call,
)
from netobservpy.core.models import MetricSample
from netobservpy.core.ports import MetricsStoragePort


class TestCounter:
    """Tests for counter() helper function."""

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_counter_creates_metric_sample_with_name(self) -> None:
        sample = counter("requests_total")
        assert sample.name == "requests_total"
        assert sample.value == 1.0
        assert sample.labels == {}

    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_counter_auto_captures_timestamp(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(time, "time", lambda: 1702300000.0)
        assert counter("requests_total").timestamp == 1702300000.0


class TestHistogram:
    @pytest.mark.core
    @pytest.mark.tier(0)
    def test_histogram_bucket_flags(self) -> None:
        samples = histogram("latency", 0.3, buckets=[0.1, 0.5, 1.0])
        buckets = {s.labels["le"]: s.value for s in samples if s.name == "latency_bucket"}
        assert buckets == {"0.1": 0.0, "0.5": 1.0, "1.0": 1.0, "+Inf": 1.0}
        by_name = {s.name: s.value for s in samples if s.name != "latency_bucket"}
        assert by_name == {"latency_sum": 0.3, "latency_count": 1.0}


class TestInMemoryMetricsStorage:
    @pytest.mark.core
    @pytest.mark.tier(1)
    def test_implements_port(self, metrics_storage: InMemoryMetricsStorage) -> None:
        assert isinstance(metrics_storage, MetricsStoragePort)

    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_writes_accumulate_per_series(
        self, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        await metrics_storage.write(counter("calls_total", labels={"code": "200"}))
        await metrics_storage.write(counter("calls_total", labels={"code": "200"}))
        await metrics_storage.write(counter("calls_total", labels={"code": "503"}))

        samples = [s async for s in metrics_storage.scrape()]

        assert [(s.labels["code"], s.value) for s in samples] == [("200", 2.0), ("503", 1.0)]

    @pytest.mark.core
    @pytest.mark.tier(1)
    def test_label_order_does_not_split_series(
        self, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        metrics_storage.add(MetricSample("m", 0.0, 1.0, {"a": "1", "b": "2"}))
        metrics_storage.add(MetricSample("m", 0.0, 1.0, {"b": "2", "a": "1"}))
        assert metrics_storage.value("m", {"a": "1", "b": "2"}) == 2.0

    @pytest.mark.core
    @pytest.mark.tier(1)
    def test_reset_clears_all_series(
        self, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        metrics_storage.add(counter("calls_total"))
        metrics_storage.reset()
        assert metrics_storage.snapshot() == []
        assert metrics_storage.value("calls_total") == 0.0

    @pytest.mark.core
    @pytest.mark.tier(1)
    def test_concurrent_increments_are_not_lost(
        self, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        def work() -> None:
            for _ in range(1000):
                metrics_storage.add(counter("calls_total"))

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert metrics_storage.value("calls_total") == 8000.0


class TestObserveBackendCall:
    @pytest.mark.core
    @pytest.mark.tier(1)
    async def test_records_counter_and_histogram(
        self, metrics_storage: InMemoryMetricsStorage
    ) -> None:
        await observe_backend_call(metrics_storage, "prometheus", 503, time.perf_counter())

        labels = {"backend": "prometheus", "code": "503"}
        assert metrics_storage.value(BACKEND_CALLS_TOTAL, labels) == 1.0
        assert metrics_storage.value(f"{BACKEND_CALL_DURATION}_count", labels) == 1.0
        assert metrics_storage.value(
            f"{BACKEND_CALL_DURATION}_bucket", {**labels, "le": "+Inf"}
        ) == 1.0
