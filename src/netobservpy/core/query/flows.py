"""LogQL builder for raw flow records.

Query shape::

    {app="netobserv-flowcollector",<label matchers>}<line filters>[|json<json filters>]

Label filters go inside the selector braces, line filters run on the raw
line, and JSON filters only after ``|json`` has extracted the fields.
"""

import logging

from netobservpy.core.errors import InvalidParameter
from netobservpy.core.models import CompiledQuery
from netobservpy.core.query.clauses import (
    REGEX,
    JsonParser,
    LabelFilter,
    LabelMatcher,
    LineFilter,
    LogPipeline,
    PipelineStage,
    StreamSelector,
)
from netobservpy.core.query.defaults import DEFAULTS, FLOW_DIRECTION, QueryDefaults
from netobservpy.core.query.params import Filter, QueryParameters, Reporter

logger = logging.getLogger(__name__)

_REPORTER_DIRECTION = {
    Reporter.SOURCE: "1",
    Reporter.DESTINATION: "0",
}


def _is_quoted(value: str) -> bool:
    return len(value) >= 2 and value.startswith('"') and value.endswith('"')


def _unquote(value: str) -> str:
    return value[1:-1] if _is_quoted(value) else value


def label_regex(values: tuple[str, ...]) -> str:
    """Case-insensitive regex for a stream label.

    Label matchers are anchored, so a quoted value matches the whole label
    and an unquoted one matches anywhere in it.
    """
    parts = []
    for value in values:
        if _is_quoted(value):
            parts.append("(?i)" + value[1:-1].replace("*", ".*"))
        else:
            parts.append("(?i).*" + value.replace("*", ".*") + ".*")
    return "|".join(parts)


def line_regex(key: str, values: tuple[str, ...]) -> str:
    """Regex matching ``"key":"value"`` inside the raw JSON line."""
    any_chars = '[^"]*'
    parts = []
    for value in values:
        if _is_quoted(value):
            pattern = value[1:-1].replace("*", any_chars)
            parts.append(f'"{key}":"(?i){pattern}"')
        else:
            pattern = value.replace("*", any_chars)
            parts.append(f'"{key}":"(?i){any_chars}{pattern}')
    return "|".join(parts)


class FlowQueryBuilder:
    """Compiles QueryParameters into a flow records query.

    Args:
        params: Validated request parameters.
        defaults: Wire constants and field classification.
    """

    def __init__(
        self, params: QueryParameters, defaults: QueryDefaults = DEFAULTS
    ) -> None:
        self.params = params
        self.defaults = defaults
        self.label_matchers: list[LabelMatcher] = []
        self.line_filters: list[LineFilter] = []
        self.json_filters: list[LabelFilter] = []
        for flt in params.filters:
            self._add_filter(flt)

    def _add_filter(self, flt: Filter) -> None:
        if not flt.values:
            return
        if flt.key in self.defaults.labels:
            self.label_matchers.append(
                LabelMatcher(flt.key, label_regex(flt.values), REGEX)
            )
        elif flt.key in self.defaults.ip_fields:
            self.json_filters.append(
                LabelFilter(
                    tuple(f'{flt.key}=ip("{_unquote(v)}")' for v in flt.values)
                )
            )
        elif flt.key in self.defaults.numeric_fields:
            values = tuple(_unquote(v) for v in flt.values)
            for value in values:
                if not (value.isascii() and value.isdigit()):
                    raise InvalidParameter(
                        f"can't parse numeric filter {flt.key}: {value}"
                    )
            self.json_filters.append(
                LabelFilter(tuple(f"{flt.key}={v}" for v in values))
            )
        else:
            self.line_filters.append(LineFilter(line_regex(flt.key, flt.values)))

    def selector(self) -> StreamSelector:
        """Stream selector: app label first, then label filters and reporter."""
        matchers = [LabelMatcher(self.defaults.app_label, self.defaults.app_value)]
        matchers.extend(self.label_matchers)
        direction = _REPORTER_DIRECTION.get(self.params.reporter)
        if direction is not None:
            matchers.append(LabelMatcher(FLOW_DIRECTION, direction))
        return StreamSelector(tuple(matchers))

    def pipeline(self, force_json: bool = False) -> LogPipeline:
        """Selector followed by line filters, then the JSON stage if needed."""
        stages: list[PipelineStage] = list(self.line_filters)
        if force_json or self.json_filters:
            stages.append(JsonParser())
            stages.extend(self.json_filters)
        return LogPipeline(self.selector(), tuple(stages))

    @property
    def limit(self) -> int:
        if self.params.limit is None:
            return self.defaults.limit
        return self.params.limit

    def build(self) -> CompiledQuery:
        query = CompiledQuery(
            query=self.pipeline().render(),
            range_seconds=self.defaults.range_seconds,
            limit=self.limit,
            start=self.params.start,
            end=self.params.end,
        )
        logger.debug("Compiled flows query: %s", query.query)
        return query
