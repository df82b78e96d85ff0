"""Tests for metric classification, ordering and the findings schema.

WHY: Findings are the contract with editors and CI. Severity, the CPS
fan-out and the serialized shape must not drift.

HOW: Hand-built metrics through classify(); real analysis output
validated against caption_qa/schemas/finding.schema.json.

RULES:
- Schema validation uses finding.schema.json shipped with the package
"""

import json
import math
from pathlib import Path

import jsonschema
import pytest

import caption_qa
from caption_qa.config import AnalysisConfig
from caption_qa.core.metrics import (
    CpsMetric,
    LeadingWhitespaceMetric,
    MaxCharsMetric,
    MergeCandidateMetric,
    MetricType,
    PercentStyleMetric,
    Severity,
)
from caption_qa.findings import classify, finding_label, sort_findings
from caption_qa.output import build_analysis_output, to_json

SCHEMA_PATH = Path(caption_qa.__file__).resolve().parent / "schemas" / "finding.schema.json"


def _load_schema():
    with open(SCHEMA_PATH) as f:
        return json.load(f)


def _cps(cps, line_index=1):
    return CpsMetric(
        line_index=line_index,
        ts_line_index=line_index - 1,
        text="text",
        cps=cps,
        duration_frames=30,
        char_count=4,
        max_cps=17.0,
        min_cps=5.0,
    )


def _merge(line_index):
    return MergeCandidateMetric(
        line_index=line_index,
        next_line_index=line_index + 2,
        text="a",
        next_text="b",
        gap_frames=0,
        edit_distance=1,
        message="Consider merging.",
    )


class TestClassify:
    """Severity mapping and the CPS fan-out."""

    def test_cps_fans_out(self):
        findings = classify([_cps(30.0), _cps(10.0), _cps(2.0), _cps(math.inf)])
        assert [f.type for f in findings] == [
            MetricType.MAX_CPS,
            MetricType.MIN_CPS,
            MetricType.MAX_CPS,
        ]
        assert [f.severity for f in findings] == [Severity.ERROR, Severity.WARN, Severity.ERROR]

    def test_max_chars_within_limit_dropped(self):
        ok = MaxCharsMetric(line_index=0, text="x", max_allowed=54, actual=54)
        over = MaxCharsMetric(line_index=0, text="x", max_allowed=54, actual=60)
        findings = classify([ok, over])
        assert len(findings) == 1
        assert "54" in findings[0].instruction and "60" in findings[0].instruction

    def test_include_warnings_false(self):
        findings = classify([_merge(1), _cps(2.0), _cps(30.0)], include_warnings=False)
        assert [f.type for f in findings] == [MetricType.MAX_CPS]

    def test_every_finding_has_instruction(self):
        metrics = [
            _cps(30.0),
            _merge(1),
            LeadingWhitespaceMetric(line_index=2, index=0, count=1, text=" x"),
            PercentStyleMetric(line_index=3, index=0, value=12.0, token="12 percent", text="t"),
        ]
        for finding in classify(metrics):
            assert finding.instruction
            assert finding_label(finding)
        pct = classify(metrics)[-1]
        assert "12%" in pct.instruction

    def test_percent_instruction_keeps_written_digits(self):
        metric = PercentStyleMetric(
            line_index=0,
            index=4,
            value=1000000.0,
            token="1,000,000 Percent",
            text="Its 1,000,000 Percent",
        )
        finding = classify([metric])[0]
        assert finding.instruction == (
            "Use the % symbol: write '1,000,000%' instead of '1,000,000 Percent'."
        )

    def test_to_dict_is_flat(self):
        finding = classify([_cps(30.0)])[0]
        out = finding.to_dict()
        assert out["type"] == "MAX_CPS"
        assert out["severity"] == "error"
        assert out["line_index"] == 1
        assert out["cps"] == 30.0


class TestSortFindings:
    def test_errors_first_then_line_then_type(self):
        warn = classify([_merge(0)])[0]
        err_late = classify([_cps(30.0, line_index=9)])[0]
        ws = classify([LeadingWhitespaceMetric(line_index=5, index=0, count=1, text=" x")])[0]
        over = classify([MaxCharsMetric(line_index=5, text="x", max_allowed=1, actual=2)])[0]
        ordered = sort_findings([warn, err_late, ws, over])
        assert ordered == [ws, over, err_late, warn]

    def test_stable_for_ties(self):
        a = classify([LeadingWhitespaceMetric(line_index=1, index=0, count=1, text=" a")])[0]
        b = classify([LeadingWhitespaceMetric(line_index=1, index=0, count=2, text="  b")])[0]
        assert sort_findings([b, a]) == [b, a]


class TestSchema:
    """Serialized findings validate against the shipped schema."""

    def test_punctuation_findings_validate(self, punctuation_doc):
        findings = build_analysis_output(punctuation_doc, "subs", AnalysisConfig())
        assert findings
        jsonschema.validate(json.loads(to_json(findings)), _load_schema())

    def test_news_findings_validate(self, news_script):
        findings = build_analysis_output(news_script, "news", AnalysisConfig())
        jsonschema.validate(json.loads(to_json(findings)), _load_schema())

    def test_infinite_cps_serializes_as_null(self, make_subs):
        text = make_subs([("00:00:01:00", "00:00:01:00", "Flash")])
        findings = build_analysis_output(text, "subs", AnalysisConfig())
        data = json.loads(to_json(findings))
        cps = [d for d in data if d["type"] == "MAX_CPS"]
        assert cps and cps[0]["cps"] is None
        jsonschema.validate(data, _load_schema())

    def test_schema_rejects_unknown_severity(self):
        with pytest.raises(jsonschema.ValidationError):
            jsonschema.validate(
                [{"type": "MAX_CHARS", "line_index": 0, "severity": "info", "instruction": "x"}],
                _load_schema(),
            )
