"""Query compilation: typed parameters in, backend query strings out."""

from netobservpy.core.query.defaults import DEFAULTS, QueryDefaults
from netobservpy.core.query.flows import FlowQueryBuilder
from netobservpy.core.query.params import (
    Filter,
    MetricField,
    MetricFunction,
    QueryParameters,
    Reporter,
)
from netobservpy.core.query.promql import PromTopologyBuilder
from netobservpy.core.query.topology import TopologyQueryBuilder

__all__ = [
    "DEFAULTS",
    "Filter",
    "FlowQueryBuilder",
    "MetricField",
    "MetricFunction",
    "PromTopologyBuilder",
    "QueryDefaults",
    "QueryParameters",
    "Reporter",
    "TopologyQueryBuilder",
]
