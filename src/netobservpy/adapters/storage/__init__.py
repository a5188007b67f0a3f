"""Storage adapters implementing core ports."""

from netobservpy.adapters.storage.in_memory import InMemoryMetricsStorage

__all__ = ["InMemoryMetricsStorage"]
