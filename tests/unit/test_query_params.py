"""Tests for QueryParameters parsing and validation."""

from urllib.parse import parse_qs

import pytest

from netobservpy.core.errors import InvalidParameter
from netobservpy.core.query.params import (
    Filter,
    MetricField,
    MetricFunction,
    QueryParameters,
    Reporter,
)


def parse(query_string: str) -> QueryParameters:
    return QueryParameters.from_query(parse_qs(query_string))


class TestReservedParams:
    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_empty_query_gives_defaults(self) -> None:
        params = parse("")
        assert params == QueryParameters()
        assert params.function is MetricFunction.SUM
        assert params.field is MetricField.BYTES
        assert params.reporter is Reporter.BOTH

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_numeric_params_are_parsed(self) -> None:
        params = parse("start=1000&end=1300&limit=50")
        assert (params.start, params.end, params.limit) == (1000, 1300, 50)

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize("name", ["start", "end"])
    def test_malformed_time_bound_is_rejected(self, name: str) -> None:
        with pytest.raises(InvalidParameter, match=f"can't parse {name} param: abc"):
            parse(f"{name}=abc")

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize("limit", ["ten", "1.5", "5e2"])
    def test_non_integer_limit_is_rejected(self, limit: str) -> None:
        with pytest.raises(InvalidParameter, match="can't parse limit param"):
            parse(f"limit={limit}")

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(("raw", "expected"), [("0", 0), ("-5", -5)])
    def test_any_integer_limit_is_kept(self, raw: str, expected: int) -> None:
        assert parse(f"limit={raw}").limit == expected

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("avg", MetricFunction.AVG),
            ("max", MetricFunction.MAX),
            ("rate", MetricFunction.RATE),
            ("sum", MetricFunction.SUM),
            ("median", MetricFunction.SUM),
        ],
    )
    def test_function_mapping_is_permissive(
        self, value: str, expected: MetricFunction
    ) -> None:
        assert parse(f"function={value}").function is expected

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("packets", MetricField.PACKETS), ("bytes", MetricField.BYTES), ("x", MetricField.BYTES)],
    )
    def test_type_mapping_is_permissive(self, value: str, expected: MetricField) -> None:
        assert parse(f"type={value}").field is expected

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_unknown_reporter_means_both(self) -> None:
        assert parse("reporter=source").reporter is Reporter.SOURCE
        assert parse("reporter=sideways").reporter is Reporter.BOTH


class TestFilters:
    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_other_params_become_filters_in_order(self) -> None:
        params = parse("SrcK8S_Namespace=a,b&limit=5&DstPort=80")
        assert params.filters == (
            Filter("SrcK8S_Namespace", ("a", "b")),
            Filter("DstPort", ("80",)),
        )

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_forbidden_characters_are_rejected(self) -> None:
        with pytest.raises(InvalidParameter, match="unauthorized sign"):
            QueryParameters.from_query({"SrcK8S_Name": ['a"}|drop']})

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_invalid_filter_name_is_rejected(self) -> None:
        with pytest.raises(InvalidParameter, match="invalid filter name"):
            QueryParameters.from_query({"bad}name": ["x"]})

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_only_first_value_of_repeated_param_is_used(self) -> None:
        params = QueryParameters.from_query({"limit": ["7", "9"]})
        assert params.limit == 7
