"""Tests for analysis output assembly and rendering."""

import json
import math

import pytest

from caption_qa.config import AnalysisConfig, parse_rule_types
from caption_qa.core.metrics import CpsMetric, MetricType
from caption_qa.findings import Finding
from caption_qa.output import (
    build_analysis_output,
    build_segments_output,
    format_cli_number,
    render_text,
    to_json,
)

FAST = "x" * 30
SLOW = "Hi."


class TestBuildAnalysisOutput:
    def test_findings_mode(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", FAST + ".")])
        records = build_analysis_output(text, "subs", AnalysisConfig())
        assert all(isinstance(r, Finding) for r in records)
        assert MetricType.MAX_CPS in {r.type for r in records}

    def test_metrics_mode_has_raw_cps(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", "Ten chars.")])
        records = build_analysis_output(text, "subs", AnalysisConfig(), mode="metrics")
        cps = [r for r in records if isinstance(r, CpsMetric)]
        assert len(cps) == 1
        assert cps[0].cps == 10.0

    def test_warnings_dropped(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", SLOW)])
        with_warn = build_analysis_output(text, "subs", AnalysisConfig())
        without = build_analysis_output(text, "subs", AnalysisConfig(include_warnings=False))
        assert MetricType.MIN_CPS in {r.type for r in with_warn}
        assert MetricType.MIN_CPS not in {r.type for r in without}

    def test_enabled_types_filter_output(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", " " + FAST)])
        config = AnalysisConfig(enabled_rule_types=parse_rule_types(["LEADING_WHITESPACE"]))
        records = build_analysis_output(text, "subs", config)
        assert [r.type for r in records] == [MetricType.LEADING_WHITESPACE]

    @pytest.mark.parametrize("rule", ["MAX_CPS", "MIN_CPS", "CPS"])
    def test_metrics_mode_keeps_raw_cps_for_cps_family(self, make_subs, rule):
        text = make_subs([("00:00:01:00", "00:00:02:00", " " + FAST)])
        config = AnalysisConfig(enabled_rule_types=parse_rule_types([rule]))
        records = build_analysis_output(text, "subs", config, mode="metrics")
        assert [r.type for r in records] == [MetricType.CPS]
        assert records[0].cps == 31.0

    def test_metrics_mode_drops_raw_cps_for_other_types(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", " " + FAST)])
        config = AnalysisConfig(enabled_rule_types=parse_rule_types(["LEADING_WHITESPACE"]))
        records = build_analysis_output(text, "subs", config, mode="metrics")
        assert [r.type for r in records] == [MetricType.LEADING_WHITESPACE]

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown output mode"):
            build_analysis_output("", "subs", mode="verdicts")

    def test_unknown_type(self):
        with pytest.raises(ValueError):
            build_analysis_output("", "srt")

    @pytest.mark.parametrize("mode", ["metrics", "findings"])
    def test_repeated_runs_are_identical(self, punctuation_doc, mode):
        config = AnalysisConfig(baseline_text=punctuation_doc.replace("Marker", "Other"))
        first = build_analysis_output(punctuation_doc, "subs", config, mode=mode)
        second = build_analysis_output(punctuation_doc, "subs", config, mode=mode)
        assert first
        assert first == second


class TestBuildSegmentsOutput:
    def test_all_and_single(self, news_script):
        assert len(build_segments_output(news_script, "news")) == 3
        only = build_segments_output(news_script, "news", segment_index=1)
        assert [s.block_type for s in only] == ["super"]

    @pytest.mark.parametrize("index", [3, -1, 99])
    def test_out_of_range(self, news_script, index):
        assert build_segments_output(news_script, "news", segment_index=index) == []


class TestFormatting:
    @pytest.mark.parametrize(
        "key, value, expected",
        [
            ("line_index", 3, "3"),
            ("ts_line_index", 4.0, "4"),
            ("Index", 2, "2"),
            ("cps", 12.345, "12.3"),
            ("gap_frames", 5, "5.0"),
            ("cps", math.inf, "inf"),
        ],
    )
    def test_format_cli_number(self, key, value, expected):
        assert format_cli_number(key, value) == expected

    def test_render_text_empty(self):
        assert render_text([]) == "No issues found."

    def test_render_text_findings(self, punctuation_doc):
        records = build_analysis_output(punctuation_doc, "subs", AnalysisConfig())
        report = render_text(records)
        assert "Punctuation is incorrect" in report
        assert "rule_code=LOWERCASE_AFTER_PERIOD" in report
        # 1-based line numbers in the header.
        assert "L5 " in report

    def test_to_json_compact(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:02:00", SLOW)])
        records = build_analysis_output(text, "subs", AnalysisConfig())
        compact = to_json(records, compact=True)
        assert "\n" not in compact
        assert json.loads(compact) == json.loads(to_json(records))
