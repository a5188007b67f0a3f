"""Typed building blocks of LogQL and PromQL expressions.

Each clause is an immutable value that renders itself to query syntax.
Builders compose clauses in order and render once, so individual clauses
can be tested without string-matching a whole query.
"""

from dataclasses import dataclass
from typing import Protocol


class Expression(Protocol):
    """Anything that renders to a query string."""

    def render(self) -> str: ...


class PipelineStage(Protocol):
    """A LogQL pipeline stage, rendered with its leading pipe."""

    def render(self) -> str: ...


EXACT = "="
REGEX = "=~"


def quote(value: str) -> str:
    """Quote a value as a double-quoted query string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class LabelMatcher:
    """``name="value"`` or ``name=~"regex"``."""

    name: str
    value: str
    op: str = EXACT

    def render(self) -> str:
        return f"{self.name}{self.op}{quote(self.value)}"


@dataclass(frozen=True)
class StreamSelector:
    """``{a="b",c=~"d"}``; the first matcher selects the log stream."""

    matchers: tuple[LabelMatcher, ...]

    def render(self) -> str:
        return "{" + ",".join(m.render() for m in self.matchers) + "}"


@dataclass(frozen=True)
class MetricSelector:
    """``metric_name{matchers}``; braces are omitted when empty."""

    name: str
    matchers: tuple[LabelMatcher, ...] = ()

    def render(self) -> str:
        if not self.matchers:
            return self.name
        return self.name + StreamSelector(self.matchers).render()


@dataclass(frozen=True)
class LineFilter:
    """Regex filter applied to the raw log line."""

    pattern: str

    def render(self) -> str:
        # Backquoted literals need no escaping of the JSON quotes in patterns
        return f"|~`{self.pattern}`"


@dataclass(frozen=True)
class JsonParser:
    """Extracts JSON fields of the log line as labels."""

    def render(self) -> str:
        return "|json"


@dataclass(frozen=True)
class LabelFilter:
    """Filter on extracted labels; alternatives are OR-ed."""

    expressions: tuple[str, ...]

    def render(self) -> str:
        return "|" + " or ".join(self.expressions)


@dataclass(frozen=True)
class Unwrap:
    """Use a numeric field as the sample value.

    Drops series whose field could not be unwrapped instead of failing the
    whole query.
    """

    field: str

    def render(self) -> str:
        return f'|unwrap {self.field}|__error__=""'


@dataclass(frozen=True)
class LogPipeline:
    """Stream selector followed by its pipeline stages, in order."""

    selector: StreamSelector
    stages: tuple[PipelineStage, ...] = ()

    def render(self) -> str:
        return self.selector.render() + "".join(s.render() for s in self.stages)


@dataclass(frozen=True)
class RangeAggregation:
    """``fn(<inner>[<range>s])``."""

    function: str
    inner: Expression
    range_seconds: int

    def render(self) -> str:
        return f"{self.function}({self.inner.render()}[{self.range_seconds}s])"


@dataclass(frozen=True)
class VectorAggregation:
    """``op by(k1,k2) (<inner>)``."""

    op: str
    by: tuple[str, ...]
    inner: Expression

    def render(self) -> str:
        return f"{self.op} by({','.join(self.by)}) ({self.inner.render()})"


@dataclass(frozen=True)
class TopK:
    """``topk(k,<inner>)``."""

    k: int
    inner: Expression

    def render(self) -> str:
        return f"topk({self.k},{self.inner.render()})"
