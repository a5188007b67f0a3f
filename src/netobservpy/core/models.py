"""Core domain models for compiled queries and normalized backend results."""

import json
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class MetricSample:
    """A single metric measurement.

    Attributes:
        name: Metric name (e.g., netobserv_backend_calls_total).
        timestamp: Unix timestamp in seconds.
        value: The metric value.
        labels: Key-value pairs for metric dimensions.
    """

    name: str
    timestamp: float
    value: float
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CompiledQuery:
    """A LogQL query ready for one call to the log backend.

    Attributes:
        query: The LogQL expression.
        range_seconds: Resolved range window, in seconds.
        limit: Resolved result limit.
        start: Optional start bound (epoch seconds), forwarded as-is.
        end: Optional end bound (epoch seconds), forwarded as-is.
        step_seconds: Sampling step for metric queries, None for log queries.
    """

    query: str
    range_seconds: int
    limit: int
    start: int | None = None
    end: int | None = None
    step_seconds: int | None = None

    def params(self) -> dict[str, str]:
        """Return the outbound query-string parameters, in wire order."""
        params = {"query": self.query}
        if self.start is not None:
            params["start"] = str(self.start)
        if self.end is not None:
            params["end"] = str(self.end)
        params["limit"] = str(self.limit)
        if self.step_seconds is not None:
            params["step"] = f"{self.step_seconds}s"
        return params


@dataclass(frozen=True)
class PromQuery:
    """A PromQL range query ready for one call to the metrics backend."""

    promql: str
    start: float
    end: float
    step_seconds: int
    range_seconds: int
    limit: int

    def params(self) -> dict[str, str]:
        return {
            "query": self.promql,
            "start": format_number(self.start),
            "end": format_number(self.end),
            "step": f"{self.step_seconds}s",
        }


def _json_timestamp(timestamp: float) -> int | float:
    # 1000 stays 1000, 1000.5 stays 1000.5
    return int(timestamp) if float(timestamp).is_integer() else timestamp


@dataclass(frozen=True)
class Sample:
    """One (timestamp, value) pair of a time series."""

    timestamp: float
    value: float


@dataclass(frozen=True)
class Series:
    """A labelled, ordered sequence of samples."""

    metric: dict[str, str]
    samples: tuple[Sample, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": dict(self.metric),
            "values": [
                [_json_timestamp(s.timestamp), format_number(s.value)]
                for s in self.samples
            ],
        }


@dataclass(frozen=True)
class Matrix:
    """Range query result: many series, each with many samples."""

    series: tuple[Series, ...] = ()


@dataclass(frozen=True)
class Vector:
    """Instant query result: many series, one sample each."""

    series: tuple[Series, ...] = ()


@dataclass(frozen=True)
class Scalar:
    """Scalar or string query result."""

    sample: Sample


BackendResult = Matrix | Vector | Scalar


class ResultType(str, Enum):
    """Kind of payload carried by a QueryResponse."""

    MATRIX = "matrix"
    RAW = "raw"


@dataclass(frozen=True)
class QueryResponse:
    """Uniform response returned to callers.

    Exactly one of ``series`` (matrix responses) or ``raw`` (log backend
    pass-through) is populated.
    """

    result_type: ResultType
    series: tuple[Series, ...] | None = None
    raw: bytes | None = None

    def __post_init__(self) -> None:
        if (self.series is None) == (self.raw is None):
            raise ValueError("QueryResponse needs exactly one of series or raw")
        if self.result_type is ResultType.RAW and self.raw is None:
            raise ValueError("raw QueryResponse without raw payload")
        if self.result_type is ResultType.MATRIX and self.series is None:
            raise ValueError("matrix QueryResponse without series")

    def to_json(self) -> bytes:
        """Serialize for the HTTP boundary.

        Raw payloads are returned byte-for-byte.
        """
        if self.raw is not None:
            return self.raw
        body = {
            "data": {
                "resultType": self.result_type.value,
                "result": [s.to_dict() for s in self.series or ()],
            }
        }
        return json.dumps(body).encode()


@dataclass(frozen=True)
class ErrorEnvelope:
    """The single error shape returned to callers."""

    message: str

    def to_json(self) -> bytes:
        return json.dumps({"Message": self.message}).encode()


def format_number(value: float) -> str:
    """Format a float the way Prometheus prints sample values.

    Integral values lose their fractional part and no exponent is used,
    so ``1.0 -> "1"`` and ``1e16 -> "10000000000000000"``.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return format(Decimal(repr(value)).normalize(), "f")
