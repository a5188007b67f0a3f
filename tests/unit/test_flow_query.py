"""Tests for the raw flow records query builder and filter translation."""

import pytest

from netobservpy.core.errors import InvalidParameter
from netobservpy.core.query import FlowQueryBuilder, QueryParameters
from netobservpy.core.query.flows import label_regex, line_regex

APP_SELECTOR = '{app="netobserv-flowcollector"}'


def compile_flows(query: dict[str, list[str]]):
    return FlowQueryBuilder(QueryParameters.from_query(query)).build()


class TestFlowQuery:
    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_no_filters_is_bare_selector(self) -> None:
        compiled = compile_flows({})
        assert compiled.query == APP_SELECTOR
        assert compiled.params() == {"query": APP_SELECTOR, "limit": "100"}

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_time_bounds_are_forwarded(self) -> None:
        compiled = compile_flows({"start": ["1000"], "end": ["2000"], "limit": ["5"]})
        assert compiled.params() == {
            "query": APP_SELECTOR,
            "start": "1000",
            "end": "2000",
            "limit": "5",
        }
        assert compiled.step_seconds is None

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_json_stage_only_with_json_filters(self) -> None:
        assert "|json" not in compile_flows({"SrcK8S_Name": ["pod"]}).query
        assert compile_flows({"Proto": ["6"]}).query == APP_SELECTOR + "|json|Proto=6"

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_ip_filter(self) -> None:
        compiled = compile_flows({"SrcAddr": ["10.0.0.1,10.1.0.0/16"]})
        assert compiled.query == (
            APP_SELECTOR + '|json|SrcAddr=ip("10.0.0.1") or SrcAddr=ip("10.1.0.0/16")'
        )

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_quoted_ip_filter_is_unquoted(self) -> None:
        compiled = compile_flows({"SrcAddr": ['"10.0.0.1"']})
        assert compiled.query == APP_SELECTOR + '|json|SrcAddr=ip("10.0.0.1")'

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_quoted_numeric_filter_is_unquoted(self) -> None:
        assert compile_flows({"DstPort": ['"443"']}).query == (
            APP_SELECTOR + "|json|DstPort=443"
        )

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_non_numeric_value_for_numeric_field_is_rejected(self) -> None:
        with pytest.raises(InvalidParameter, match="SrcPort"):
            compile_flows({"SrcPort": ["http"]})

    @pytest.mark.query
    @pytest.mark.tier(0)
    @pytest.mark.parametrize("value", ["²", "٣", "8²"], ids=["superscript", "arabic-indic", "mixed"])
    def test_non_ascii_digits_are_rejected(self, value: str) -> None:
        with pytest.raises(InvalidParameter, match="Proto"):
            compile_flows({"Proto": [value]})

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_reporter_source(self) -> None:
        compiled = compile_flows({"reporter": ["source"]})
        assert compiled.query == '{app="netobserv-flowcollector",FlowDirection="1"}'

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_empty_filter_value_is_ignored(self) -> None:
        assert compile_flows({"SrcK8S_Namespace": [","]}).query == APP_SELECTOR


class TestFilterRegexes:
    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_label_regex_unquoted_matches_anywhere(self) -> None:
        assert label_regex(("net", "kube*")) == "(?i).*net.*|(?i).*kube.*.*"

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_label_regex_quoted_matches_whole_value(self) -> None:
        assert label_regex(('"default"',)) == "(?i)default"

    @pytest.mark.query
    @pytest.mark.tier(0)
    def test_line_regex(self) -> None:
        assert line_regex("SrcK8S_Name", ("api",)) == '"SrcK8S_Name":"(?i)[^"]*api'
        assert line_regex("SrcK8S_Name", ('"api"',)) == '"SrcK8S_Name":"(?i)api"'
