"""Constants that form the wire contract with the backends.

They are grouped in one immutable object so builders receive them at
construction time and tests can override any of them.
"""

from pydantic import BaseModel, ConfigDict, StrictInt

TOPOLOGY_FIELDS: tuple[str, ...] = (
    "SrcK8S_Name",
    "SrcK8S_Type",
    "SrcK8S_OwnerName",
    "SrcK8S_OwnerType",
    "SrcK8S_Namespace",
    "SrcAddr",
    "SrcK8S_HostIP",
    "DstK8S_Name",
    "DstK8S_Type",
    "DstK8S_OwnerName",
    "DstK8S_OwnerType",
    "DstK8S_Namespace",
    "DstAddr",
    "DstK8S_HostIP",
)

FLOW_DIRECTION = "FlowDirection"


class QueryDefaults(BaseModel):
    """Defaults and field classification used by the query builders.

    Attributes:
        limit: Result limit (top-K) when the caller gives none.
        range_seconds: Range window when start/end do not give a positive one.
        step_seconds: Step appended to every time-series query.
        app_label: Name of the stream label identifying flow logs.
        app_value: Value of that label.
        topology_fields: Grouping keys of the topology aggregation.
        labels: Fields indexed as stream labels by the log backend.
        ip_fields: Fields filtered with the ip() matcher.
        numeric_fields: Fields filtered with a numeric equality.
        metric_prefix: Prefix of flow metric names on the metrics backend.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    limit: StrictInt = 100
    range_seconds: StrictInt = 300
    step_seconds: StrictInt = 60
    app_label: str = "app"
    app_value: str = "netobserv-flowcollector"
    topology_fields: tuple[str, ...] = TOPOLOGY_FIELDS
    labels: tuple[str, ...] = (
        "SrcK8S_Namespace",
        "SrcK8S_OwnerName",
        "DstK8S_Namespace",
        "DstK8S_OwnerName",
        FLOW_DIRECTION,
    )
    ip_fields: tuple[str, ...] = (
        "SrcAddr",
        "DstAddr",
        "SrcK8S_HostIP",
        "DstK8S_HostIP",
    )
    numeric_fields: tuple[str, ...] = (
        "SrcPort",
        "DstPort",
        "Proto",
        "Bytes",
        "Packets",
    )
    metric_prefix: str = "netobserv_flows_"


DEFAULTS = QueryDefaults()
