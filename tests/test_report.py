"""Tests for report assembly and text rendering."""

import io
import json
from collections import Counter

import pytest

from analysis_core import Aggregator, new_stats
from errors import UnsupportedDimension
from histogram import Bucket, Histogram
from records import Dimension, LogFormat, capabilities_for
from render import render_report, render_table
from report import HistogramSection, RankedSection, ReportBuilder, build_report


class TestCapabilityContainment:
    @pytest.mark.parametrize("log_format", list(LogFormat))
    def test_sections_match_capabilities(self, log_format):
        report = build_report(new_stats(log_format), log_format)
        assert set(report.dimensions()) == set(capabilities_for(log_format))

    def test_common_has_no_user_agent_section(self):
        report = build_report(new_stats(LogFormat.COMMON), LogFormat.COMMON)
        assert report.section(Dimension.USER_AGENT) is None
        assert report.section(Dimension.RESPONSE_TIME) is None

    def test_unsupported_dimension_raises(self):
        builder = ReportBuilder(LogFormat.COMMON)
        with pytest.raises(UnsupportedDimension) as exc:
            builder.section_for(new_stats(LogFormat.COMMON), Dimension.USER_AGENT)
        assert exc.value.dimension is Dimension.USER_AGENT
        assert exc.value.log_format is LogFormat.COMMON

    def test_state_of_another_format_rejected(self):
        with pytest.raises(ValueError):
            build_report(new_stats(LogFormat.GOROUTER), LogFormat.COMMON)

    def test_section_order(self):
        report = build_report(new_stats(LogFormat.COMBINED), LogFormat.COMBINED, top=3)
        titles = [section.title for section in report.sections]
        assert titles == [
            "Duration",
            "Total Requests",
            "Total Errors",
            "Response Codes",
            "Request Methods",
            "Top 3 Requests (no query params)",
            "Top 3 Requests (with query params)",
            "Top 3 User Agents",
            "Top 3 Referrers",
            "Top 3 Client IPs",
        ]


class TestReportContent:
    def test_empty_state(self):
        report = build_report(new_stats(LogFormat.GOROUTER), LogFormat.GOROUTER)
        assert report.section("total_requests").value == 0
        assert report.section("errors").value == 0
        assert report.section("duration").value is None
        for section in report.sections:
            if isinstance(section, RankedSection):
                assert section.rows == []
            elif isinstance(section, HistogramSection):
                assert section.buckets == []

    def test_top_limits_ranked_tables(self, common_line):
        aggregator = Aggregator(LogFormat.COMMON)
        aggregator.ingest_lines(common_line(f"/p{i}") for i in range(15))
        report = build_report(aggregator.state, LogFormat.COMMON, top=10)
        assert len(report.section(Dimension.PATH).rows) == 10
        assert report.section(Dimension.STATUS_CODE).rows == [(200, 15)]

    def test_status_codes_and_methods_are_never_truncated(self, common_line):
        aggregator = Aggregator(LogFormat.COMMON)
        aggregator.ingest_lines(common_line("/a", status=200 + i, method=f"M{i}") for i in range(15))
        report = build_report(aggregator.state, LogFormat.COMMON, top=10)
        assert len(report.section(Dimension.STATUS_CODE).rows) == 15
        assert len(report.section(Dimension.METHOD).rows) == 15
        assert report.section(Dimension.STATUS_CODE).title == "Response Codes"
        assert len(report.section(Dimension.PATH_WITH_QUERY).rows) == 1

    def test_histogram_threshold_applied(self):
        state = new_stats(LogFormat.CLOUD_CONTROLLER)
        state.histograms[Dimension.RESPONSE_TIME] = Histogram(Counter({0: 1, 1: 1, 10: 5}), missing=2)
        report = build_report(state, LogFormat.CLOUD_CONTROLLER, min_response_time_threshold=3)
        section = report.section(Dimension.RESPONSE_TIME)
        assert section.buckets == [Bucket(0, 2, 2, merged=2), Bucket(10, 20, 5)]
        assert section.missing == 2
        assert section.total == 7

    def test_as_dict_is_json_serializable(self, gorouter_line):
        aggregator = Aggregator(LogFormat.GOROUTER)
        aggregator.ingest_line(gorouter_line())
        summary = build_report(aggregator.state, LogFormat.GOROUTER).as_dict()
        decoded = json.loads(json.dumps(summary))
        assert decoded["format"] == "gorouter"
        assert decoded["total_requests"] == 1
        assert decoded["duration"]["start"] == "2019-12-20T12:41:32.218000+00:00"
        assert decoded["client_ip"] == [{"value": "10.0.1.1", "count": 1}]
        assert decoded["response_time"]["buckets"] == [{"from_ms": 10, "to_ms": 20, "count": 1, "merged": 1}]


class TestRender:
    def test_render_table(self):
        out = io.StringIO()
        render_table([["/a", "2"], ["/long", "10"]], out)
        assert out.getvalue().splitlines() == [
            "+-------+----+",
            "| /a    |  2 |",
            "| /long | 10 |",
            "+-------+----+",
        ]

    def test_key_column_left_count_column_right(self):
        out = io.StringIO()
        render_table([["7", "1"], ["1000", "25"]], out)
        assert out.getvalue().splitlines()[1:3] == ["| 7    |  1 |", "| 1000 | 25 |"]

    def test_render_empty_table(self):
        out = io.StringIO()
        render_table([], out)
        assert out.getvalue() == "  (no entries)\n"

    def test_render_report(self, common_line):
        aggregator = Aggregator(LogFormat.COMMON)
        aggregator.ingest_lines([common_line("/a"), common_line("/a"), common_line("/b", 404)])
        out = io.StringIO()
        render_report(build_report(aggregator.state, LogFormat.COMMON), out)
        text = out.getvalue()
        assert "Duration: 2000-10-10 13:55:36-07:00 to 2000-10-10 13:55:36-07:00" in text
        assert "Total Requests: 3" in text
        assert "Total Errors  : 0" in text
        assert "| 200 | 2 |" in text
        assert "| /a | 2 |" in text
        assert "User Agents" not in text

    def test_render_histogram_with_missing(self, gorouter_line):
        aggregator = Aggregator(LogFormat.GOROUTER)
        aggregator.ingest_line(gorouter_line(response_time="0.012"))
        aggregator.ingest_line(gorouter_line(response_time="-"))
        out = io.StringIO()
        render_report(build_report(aggregator.state, LogFormat.GOROUTER, min_response_time_threshold=1), out)
        text = out.getvalue()
        assert "| 10 to 20 ms | 1 |" in text
        assert "| <none>      | 1 |" in text
