"""Metric → Finding classification, labels and ordering.

WHY: Metrics are measurements; editors need verdicts. A Finding adds a
severity and a plain-language instruction to the metric so the CLI and
the editor can colour and explain it the same way.

HOW: classify() walks the metrics once. Raw CPS metrics are compared to
the thresholds they carry and re-emitted as MAX_CPS (error), MIN_CPS
(warn) or dropped. Every other metric maps 1:1 through the _SEVERITY
table and an instruction template. sort_findings() orders findings for
display and finding_label() names them briefly.

RULES:
- warn: MIN_CPS, CPS_BALANCE, MERGE_CANDIDATE; everything else is error
- CPS is never exposed as a finding
- include_warnings=False drops exactly the warn findings
- Every finding has a non-empty instruction
- The severity, instruction and label tables cover every metric type
  (checked at import time)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List

from caption_qa.core.metrics import (
    BaselineMetric,
    CapitalizationMetric,
    CpsBalanceMetric,
    CpsMetric,
    LeadingWhitespaceMetric,
    MaxCharsMetric,
    MaxCpsMetric,
    MergeCandidateMetric,
    Metric,
    MetricType,
    MinCpsMetric,
    MissingTranslationMetric,
    NumberStyleMetric,
    PercentStyleMetric,
    PunctuationMetric,
    PunctuationRuleCode,
    Severity,
)


@dataclass(frozen=True)
class Finding:
    """A metric with a severity and an instruction for the editor."""

    metric: Metric
    severity: Severity
    instruction: str

    @property
    def type(self) -> MetricType:
        return self.metric.type

    @property
    def line_index(self) -> int:
        return self.metric.line_index

    def to_dict(self) -> Dict[str, Any]:
        out = self.metric.to_dict()
        out["severity"] = self.severity.value
        out["instruction"] = self.instruction
        return out


_SEVERITY: Dict[MetricType, Severity] = {
    MetricType.MAX_CHARS: Severity.ERROR,
    MetricType.LEADING_WHITESPACE: Severity.ERROR,
    MetricType.MAX_CPS: Severity.ERROR,
    MetricType.MIN_CPS: Severity.WARN,
    MetricType.CPS_BALANCE: Severity.WARN,
    MetricType.MERGE_CANDIDATE: Severity.WARN,
    MetricType.NUMBER_STYLE: Severity.ERROR,
    MetricType.PERCENT_STYLE: Severity.ERROR,
    MetricType.CAPITALIZATION: Severity.ERROR,
    MetricType.PUNCTUATION: Severity.ERROR,
    MetricType.BASELINE: Severity.ERROR,
    MetricType.MISSING_TRANSLATION: Severity.ERROR,
}

_LABELS: Dict[MetricType, str] = {
    MetricType.MAX_CPS: "Reading speed is too high",
    MetricType.MIN_CPS: "Reading speed is too low",
    MetricType.CPS_BALANCE: "Reading speed changes too much",
    MetricType.MERGE_CANDIDATE: "Lines could be merged",
    MetricType.MAX_CHARS: "Line has too many characters",
    MetricType.NUMBER_STYLE: "Number format is incorrect",
    MetricType.PERCENT_STYLE: "Percent format is incorrect",
    MetricType.CAPITALIZATION: "Capitalization is incorrect",
    MetricType.LEADING_WHITESPACE: "Line starts with extra spaces",
    MetricType.PUNCTUATION: "Punctuation is incorrect",
    MetricType.BASELINE: "Text does not match baseline",
    MetricType.MISSING_TRANSLATION: "Translation is missing",
}

_PUNCTUATION_INSTRUCTIONS: Dict[PunctuationRuleCode, str] = {
    PunctuationRuleCode.LOWERCASE_AFTER_PERIOD: (
        "Start this line with a capital letter; the previous line ends a sentence."
    ),
    PunctuationRuleCode.MISSING_PUNCTUATION_BEFORE_CAPITAL: (
        "End this line with sentence punctuation; the next line starts with a capital."
    ),
    PunctuationRuleCode.MISSING_COLON_BEFORE_QUOTE: (
        "End this line with ':' before the quotation on the next line."
    ),
    PunctuationRuleCode.MISSING_END_PUNCTUATION: (
        "End the final line with terminal punctuation."
    ),
    PunctuationRuleCode.MISSING_CLOSING_QUOTE: (
        "Close the quotation opened on this line."
    ),
    PunctuationRuleCode.MISSING_OPENING_QUOTE: (
        "Add the opening quote for the quotation closed on this line."
    ),
    PunctuationRuleCode.MISSING_OPENING_QUOTE_CONTINUATION: (
        "Start this line with an opening quote; the quotation continues from the previous line."
    ),
}


def _num(value: float) -> str:
    return "{:.1f}".format(value) if math.isfinite(value) else str(value)


def _max_chars(m: MaxCharsMetric) -> str:
    return "Shorten this line to {} characters or fewer (currently {}).".format(
        m.max_allowed, m.actual
    )


def _leading_whitespace(m: LeadingWhitespaceMetric) -> str:
    return "Remove the {} leading whitespace character{}.".format(
        m.count, "" if m.count == 1 else "s"
    )


def _max_cps(m: MaxCpsMetric) -> str:
    return (
        "Reading speed is {} CPS, above the limit of {}. "
        "Shorten the text or extend the cue.".format(_num(m.cps), _num(m.max_cps))
    )


def _min_cps(m: MinCpsMetric) -> str:
    return (
        "Reading speed is {} CPS, below the minimum of {}. "
        "Shorten the cue or add text.".format(_num(m.cps), _num(m.min_cps))
    )


def _cps_balance(m: CpsBalanceMetric) -> str:
    return (
        "Reading speed jumps by {} CPS ({} vs {}). "
        "Rebalance the text between adjacent cues.".format(
            _num(m.delta_cps), _num(m.cps), _num(m.neighbor_cps)
        )
    )


def _merge_candidate(m: MergeCandidateMetric) -> str:
    return m.message


def _number_style(m: NumberStyleMetric) -> str:
    if m.expected == "words":
        return "Write '{}' in words.".format(m.token)
    return "Write '{}' as digits ({}).".format(m.token, m.value)


def _percent_style(m: PercentStyleMetric) -> str:
    digits = m.token.split(None, 1)[0]
    return "Use the % symbol: write '{}%' instead of '{}'.".format(digits, m.token)


def _capitalization(m: CapitalizationMetric) -> str:
    return "Write '{}' as '{}'.".format(m.found, m.expected)


def _punctuation(m: PunctuationMetric) -> str:
    return _PUNCTUATION_INSTRUCTIONS[m.rule_code]


def _baseline(m: BaselineMetric) -> str:
    if m.reason == "missing":
        return "Restore the baseline timestamp line {}.".format(m.expected)
    if m.reason == "extra":
        return "Remove the timestamp line {}; it is not in the baseline.".format(m.actual)
    return "Restore the baseline inline text '{}'.".format(m.expected)


def _missing_translation(m: MissingTranslationMetric) -> str:
    return "Add an English translation for this {} source text.".format(
        m.block_type.upper()
    )


_INSTRUCTIONS: Dict[MetricType, Callable[[Any], str]] = {
    MetricType.MAX_CHARS: _max_chars,
    MetricType.LEADING_WHITESPACE: _leading_whitespace,
    MetricType.MAX_CPS: _max_cps,
    MetricType.MIN_CPS: _min_cps,
    MetricType.CPS_BALANCE: _cps_balance,
    MetricType.MERGE_CANDIDATE: _merge_candidate,
    MetricType.NUMBER_STYLE: _number_style,
    MetricType.PERCENT_STYLE: _percent_style,
    MetricType.CAPITALIZATION: _capitalization,
    MetricType.PUNCTUATION: _punctuation,
    MetricType.BASELINE: _baseline,
    MetricType.MISSING_TRANSLATION: _missing_translation,
}

_EXPOSED = set(MetricType) - {MetricType.CPS}
for _table in (_SEVERITY, _LABELS, _INSTRUCTIONS):
    if set(_table) != _EXPOSED:
        raise RuntimeError(
            "Finding tables out of sync with MetricType: {}".format(
                sorted(t.value for t in _EXPOSED.symmetric_difference(_table))
            )
        )


def _finding(metric: Metric) -> Finding:
    return Finding(
        metric=metric,
        severity=_SEVERITY[metric.type],
        instruction=_INSTRUCTIONS[metric.type](metric),
    )


def _split_cps(metric: CpsMetric) -> List[Metric]:
    if metric.cps > metric.max_cps:
        return [
            MaxCpsMetric(
                line_index=metric.line_index,
                ts_line_index=metric.ts_line_index,
                text=metric.text,
                cps=metric.cps,
                duration_frames=metric.duration_frames,
                char_count=metric.char_count,
                max_cps=metric.max_cps,
            )
        ]
    if metric.cps < metric.min_cps:
        return [
            MinCpsMetric(
                line_index=metric.line_index,
                ts_line_index=metric.ts_line_index,
                text=metric.text,
                cps=metric.cps,
                duration_frames=metric.duration_frames,
                char_count=metric.char_count,
                min_cps=metric.min_cps,
            )
        ]
    return []


def classify(metrics: Iterable[Metric], include_warnings: bool = True) -> List[Finding]:
    """Turn metrics into findings.

    WHY: The CLI and editor only show violations, each with a severity
    and an instruction; raw CPS values are an internal measurement.

    HOW: CPS metrics fan out to MAX_CPS, MIN_CPS or nothing; MAX_CHARS
    is kept only when over its limit; everything else maps 1:1.

    RULES:
    - Output order follows input order
    - include_warnings=False removes warn findings after classification

    Args:
        metrics: Metrics from the rule engine.
        include_warnings: Keep warn-severity findings.

    Returns:
        List of Finding objects.
    """
    findings: List[Finding] = []
    for metric in metrics:
        if isinstance(metric, CpsMetric):
            findings.extend(_finding(m) for m in _split_cps(metric))
            continue
        if isinstance(metric, MaxCharsMetric) and metric.actual <= metric.max_allowed:
            continue
        findings.append(_finding(metric))

    if not include_warnings:
        findings = [f for f in findings if f.severity != Severity.WARN]
    return findings


def finding_label(finding: Finding) -> str:
    """Short human label for a finding's type."""
    return _LABELS[finding.type]


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    """Errors first, then by line, then by type name; ties keep input order."""
    return sorted(
        findings,
        key=lambda f: (
            0 if f.severity == Severity.ERROR else 1,
            f.line_index,
            f.type.value,
        ),
    )
