"""LogQL builder for the topology view.

Query shape::

    topk(<k>,
      sum by(<topology fields>) (
        <function>(
          {<label filters>}<line filters>|json<json filters>
            |unwrap Bytes|__error__=""[<range>s]
        )
      )
    )

sent with a fixed ``step`` so the front end gets a predictable cadence.
"""

import logging

from netobservpy.core.models import CompiledQuery
from netobservpy.core.query.clauses import (
    LogPipeline,
    RangeAggregation,
    TopK,
    Unwrap,
    VectorAggregation,
)
from netobservpy.core.query.defaults import DEFAULTS, QueryDefaults
from netobservpy.core.query.flows import FlowQueryBuilder
from netobservpy.core.query.params import MetricFunction, QueryParameters

logger = logging.getLogger(__name__)


def resolve_range(params: QueryParameters, default: int) -> int:
    """Range window in seconds: end - start when positive, else the default."""
    if params.start is not None and params.end is not None:
        rng = params.end - params.start
        if rng > 0:
            return rng
    return default


class TopologyQueryBuilder(FlowQueryBuilder):
    """Compiles QueryParameters into a top-K topology aggregation."""

    def __init__(
        self, params: QueryParameters, defaults: QueryDefaults = DEFAULTS
    ) -> None:
        super().__init__(params, defaults)
        self.range_seconds = resolve_range(params, defaults.range_seconds)

    def pipeline(self, force_json: bool = True) -> LogPipeline:
        pipeline = super().pipeline(force_json=force_json)
        if self.params.function is MetricFunction.RATE:
            # rate counts log lines, there is no field to unwrap
            return pipeline
        return LogPipeline(
            pipeline.selector, pipeline.stages + (Unwrap(self.params.field.value),)
        )

    def expression(self) -> TopK:
        return TopK(
            self.limit,
            VectorAggregation(
                "sum",
                self.defaults.topology_fields,
                RangeAggregation(
                    self.params.function.value, self.pipeline(), self.range_seconds
                ),
            ),
        )

    def build(self) -> CompiledQuery:
        query = CompiledQuery(
            query=self.expression().render(),
            range_seconds=self.range_seconds,
            limit=self.limit,
            start=self.params.start,
            end=self.params.end,
            step_seconds=self.defaults.step_seconds,
        )
        logger.debug(
            "Compiled topology query (range=%ss, limit=%s): %s",
            query.range_seconds,
            query.limit,
            query.query,
        )
        return query
