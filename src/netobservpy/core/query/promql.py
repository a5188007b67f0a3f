"""PromQL builder for the topology view served from the metrics backend.

Same aggregation as the LogQL topology query, over flow counters::

    topk(<k>,sum by(<topology fields>) (<function>(netobserv_flows_bytes_total{...}[<range>s])))

Only stream-label filters and the reporter apply: metrics have no log
line to run line or JSON filters on.
"""

import logging

from netobservpy.core.models import PromQuery
from netobservpy.core.query.clauses import (
    REGEX,
    LabelMatcher,
    MetricSelector,
    RangeAggregation,
    TopK,
    VectorAggregation,
)
from netobservpy.core.query.defaults import DEFAULTS, FLOW_DIRECTION, QueryDefaults
from netobservpy.core.query.flows import label_regex
from netobservpy.core.query.params import QueryParameters, Reporter
from netobservpy.core.query.topology import resolve_range

logger = logging.getLogger(__name__)


class PromTopologyBuilder:
    def __init__(
        self, params: QueryParameters, defaults: QueryDefaults = DEFAULTS
    ) -> None:
        self.params = params
        self.defaults = defaults
        self.range_seconds = resolve_range(params, defaults.range_seconds)
        self.limit = params.limit if params.limit is not None else defaults.limit

    def metric_name(self) -> str:
        return f"{self.defaults.metric_prefix}{self.params.field.value.lower()}_total"

    def matchers(self) -> tuple[LabelMatcher, ...]:
        matchers = [
            LabelMatcher(flt.key, label_regex(flt.values), REGEX)
            for flt in self.params.filters
            if flt.values and flt.key in self.defaults.labels
        ]
        if self.params.reporter is Reporter.SOURCE:
            matchers.append(LabelMatcher(FLOW_DIRECTION, "1"))
        elif self.params.reporter is Reporter.DESTINATION:
            matchers.append(LabelMatcher(FLOW_DIRECTION, "0"))
        return tuple(matchers)

    def expression(self) -> TopK:
        return TopK(
            self.limit,
            VectorAggregation(
                "sum",
                self.defaults.topology_fields,
                RangeAggregation(
                    self.params.function.value,
                    MetricSelector(self.metric_name(), self.matchers()),
                    self.range_seconds,
                ),
            ),
        )

    def build(self, now: float) -> PromQuery:
        """Compile the query over [start, end], or the trailing range ending now."""
        if self.params.start is not None and self.params.end is not None:
            start, end = float(self.params.start), float(self.params.end)
        else:
            end = float(self.params.end) if self.params.end is not None else now
            start = (
                float(self.params.start)
                if self.params.start is not None
                else end - self.range_seconds
            )
        query = PromQuery(
            promql=self.expression().render(),
            start=start,
            end=end,
            step_seconds=self.defaults.step_seconds,
            range_seconds=self.range_seconds,
            limit=self.limit,
        )
        logger.debug("Compiled PromQL topology query: %s", query.promql)
        return query
