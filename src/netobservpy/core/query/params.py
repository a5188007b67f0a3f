"""Caller-supplied query parameters.

Inbound requests carry plain string parameters (as returned by
``urllib.parse.parse_qs``). ``QueryParameters.from_query`` validates them
once; builders only ever see the typed result.
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

from netobservpy.core.errors import InvalidParameter

RESERVED_PARAMS = frozenset({"start", "end", "limit", "function", "type", "reporter"})

# Characters allowed in filter values
_FILTER_VALUE = re.compile(r'^[\w\-.,"*:/]*$')
_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class MetricFunction(str, Enum):
    """Per-series aggregation over the range window."""

    AVG = "avg_over_time"
    MAX = "max_over_time"
    RATE = "rate"
    SUM = "sum_over_time"

    @classmethod
    def from_param(cls, value: str | None) -> "MetricFunction":
        """Map the ``function`` parameter; unknown values give SUM."""
        return _FUNCTIONS.get(value or "", cls.SUM)


_FUNCTIONS = {
    "avg": MetricFunction.AVG,
    "max": MetricFunction.MAX,
    "rate": MetricFunction.RATE,
    "sum": MetricFunction.SUM,
}


class MetricField(str, Enum):
    """Numeric flow field used as the sample value."""

    BYTES = "Bytes"
    PACKETS = "Packets"

    @classmethod
    def from_param(cls, value: str | None) -> "MetricField":
        """Map the ``type`` parameter; anything but "packets" gives BYTES."""
        if value == "packets":
            return cls.PACKETS
        return cls.BYTES


class Reporter(str, Enum):
    """Which side of a flow reported it."""

    SOURCE = "source"
    DESTINATION = "destination"
    BOTH = "both"

    @classmethod
    def from_param(cls, value: str | None) -> "Reporter":
        try:
            return cls(value)
        except ValueError:
            return cls.BOTH


@dataclass(frozen=True)
class Filter:
    """A filter on one flow field; values are OR-ed alternatives."""

    key: str
    values: tuple[str, ...]


@dataclass(frozen=True)
class QueryParameters:
    """Validated filter and aggregation intent of one request."""

    start: int | None = None
    end: int | None = None
    limit: int | None = None
    function: MetricFunction = MetricFunction.SUM
    field: MetricField = MetricField.BYTES
    reporter: Reporter = Reporter.BOTH
    filters: tuple[Filter, ...] = ()

    @classmethod
    def from_query(cls, params: Mapping[str, Sequence[str]]) -> "QueryParameters":
        """Build parameters from a parsed query string.

        Args:
            params: Mapping of parameter name to its values, as returned by
                ``urllib.parse.parse_qs``. Only the first value of each
                parameter is used.

        Raises:
            InvalidParameter: if start, end or limit is not an integer, or a
                filter value contains forbidden characters.
        """
        first = {key: values[0] for key, values in params.items() if values}
        filters = tuple(
            _parse_filter(key, value)
            for key, value in first.items()
            if key not in RESERVED_PARAMS
        )
        return cls(
            start=_parse_int_param(first, "start"),
            end=_parse_int_param(first, "end"),
            limit=_parse_int_param(first, "limit"),
            function=MetricFunction.from_param(first.get("function")),
            field=MetricField.from_param(first.get("type")),
            reporter=Reporter.from_param(first.get("reporter")),
            filters=filters,
        )


def _parse_int_param(params: Mapping[str, str], name: str) -> int | None:
    raw = params.get(name, "")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidParameter(f"can't parse {name} param: {raw}") from None


def _parse_filter(key: str, raw: str) -> Filter:
    if not _FIELD_NAME.match(key):
        raise InvalidParameter(f"invalid filter name: {key}")
    if not _FILTER_VALUE.match(raw):
        raise InvalidParameter(f"unauthorized sign in flows request: {key}={raw}")
    values = tuple(v for v in raw.split(",") if v)
    return Filter(key=key, values=values)
