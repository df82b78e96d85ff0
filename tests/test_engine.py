"""Tests for the rule engine and the rule-set builders.

WHY: The engine decides which contexts rules see and in which order
results come back. Front ends rely on that order being stable.

HOW: A tiny recording rule captures every context it is handed; the
real rule sets are checked for membership and order.
"""

from typing import List

import pytest

from caption_qa.config import AnalysisConfig, parse_rule_types
from caption_qa.core.engine import (
    ContextMode,
    RuleContext,
    analyze_lines,
    analyze_segments,
    analyze_text_by_type,
    segment_text,
)
from caption_qa.core.metrics import MaxCharsMetric, Metric, MetricType
from caption_qa.rules import (
    RULES,
    build_news_rules,
    build_subs_rules,
)
from caption_qa.rules.base import BaseRule
from caption_qa.rules.cps import CpsRule, MaxCpsRule, MinCpsRule
from caption_qa.rules.max_chars import MaxCharsRule


class RecordingRule(BaseRule):
    metric_types = (MetricType.MAX_CHARS,)

    def __init__(self, config=None):
        super().__init__(config)
        self.seen: List[RuleContext] = []

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        self.seen.append(ctx)
        return [MaxCharsMetric(line_index=ctx.line_index, text="", max_allowed=0, actual=0)]


class TestEngine:
    """Context construction and ordering."""

    def test_line_mode_one_context_per_line(self):
        rule = RecordingRule()
        metrics = analyze_lines("a\r\nb\nc", [rule])
        assert [c.mode for c in rule.seen] == [ContextMode.LINE] * 3
        assert [m.line_index for m in metrics] == [0, 1, 2]
        assert rule.seen[0].lines == ("a", "b", "c")
        assert rule.seen[0].is_first and not rule.seen[1].is_first

    def test_segment_mode_rule_order_within_context(self, make_subs):
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", "First cue"),
                ("00:00:02:00", "00:00:03:00", "Second cue"),
            ]
        )
        a, b = RecordingRule(), RecordingRule()
        segments = segment_text(text, "subs")
        analyze_segments(segments, [a, b], lines=text.split("\n"))
        assert [c.segment_index for c in a.seen] == [0, 1]
        assert all(c.mode == ContextMode.SEGMENT for c in a.seen)
        assert len(b.seen) == 2

    def test_empty_document_gets_placeholder_segment(self):
        rule = RecordingRule()
        analyze_text_by_type("", "subs", [rule])
        assert len(rule.seen) == 1
        assert rule.seen[0].segment.line_index == 0
        assert rule.seen[0].segment.text == ""

    def test_unknown_type_raises_before_rules_run(self):
        rule = RecordingRule()
        with pytest.raises(ValueError, match="Unknown analysis type"):
            analyze_text_by_type("x", "srt", [rule])
        assert rule.seen == []

    def test_line_mode_max_chars_uses_payload(self):
        text = "00:00:01:00\t00:00:02:00\n" + "x" * 60
        metrics = analyze_lines(text, [MaxCharsRule(AnalysisConfig(max_chars=54))])
        assert len(metrics) == 1
        assert metrics[0].line_index == 1
        assert metrics[0].actual == 60


class TestRuleSets:
    """build_subs_rules() / build_news_rules() membership and order."""

    def test_registry_keys_are_snake_case(self):
        for key, cls in RULES.items():
            assert key == key.lower()
            assert issubclass(cls, BaseRule)

    def test_subs_findings_order(self):
        names = [r.name for r in build_subs_rules()]
        assert names == [
            "MaxCharsRule",
            "LeadingWhitespaceRule",
            "CpsBalanceRule",
            "MergeCandidateRule",
            "CapitalizationRule",
            "PercentStyleRule",
            "NumberStyleRule",
            "PunctuationRule",
            "MaxCpsRule",
            "MinCpsRule",
        ]

    def test_baseline_only_with_text(self):
        rules = build_subs_rules(AnalysisConfig(baseline_text="00:00:01:00\t00:00:02:00"))
        assert rules[-1].name == "BaselineRule"

    def test_metrics_set_uses_raw_cps(self):
        rules = build_subs_rules(rule_set="metrics")
        assert any(isinstance(r, CpsRule) for r in rules)
        assert not any(isinstance(r, (MaxCpsRule, MinCpsRule)) for r in rules)

    def test_unknown_rule_set(self):
        with pytest.raises(ValueError):
            build_subs_rules(rule_set="everything")

    def test_enabled_types_filter_rules(self):
        config = AnalysisConfig(enabled_rule_types=parse_rule_types(["max_cps"]))
        assert [r.name for r in build_subs_rules(config)] == ["MaxCpsRule"]
        assert [r.name for r in build_subs_rules(config, "metrics")] == ["CpsRule"]

    def test_news_order(self):
        names = [r.name for r in build_news_rules()]
        assert names == [
            "MaxCharsRule",
            "LeadingWhitespaceRule",
            "NumberStyleRule",
            "PercentStyleRule",
            "CapitalizationRule",
            "MissingTranslationRule",
        ]


class TestConfig:
    def test_parse_rule_types(self):
        assert parse_rule_types(None) is None
        assert parse_rule_types([]) is None
        assert parse_rule_types(["max_chars", "CPS"]) == frozenset(
            {MetricType.MAX_CHARS, MetricType.CPS}
        )

    def test_parse_rule_types_unknown(self):
        with pytest.raises(ValueError, match="Unknown rule type"):
            parse_rule_types(["LINE_LENGTH"])

    def test_is_enabled(self):
        config = AnalysisConfig(enabled_rule_types=frozenset({MetricType.MIN_CPS}))
        assert config.is_enabled(MetricType.MAX_CPS, MetricType.MIN_CPS)
        assert not config.is_enabled(MetricType.MAX_CHARS)
        assert AnalysisConfig().is_enabled(MetricType.MAX_CHARS)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CAPTION_QA_MAX_CHARS", "40")
        monkeypatch.setenv("CAPTION_QA_MAX_CPS", "not-a-number")
        config = AnalysisConfig.from_env(min_cps=2.0)
        assert config.max_chars == 40
        assert config.max_cps == AnalysisConfig().max_cps
        assert config.min_cps == 2.0
