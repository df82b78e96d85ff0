"""Metric records — the raw output of every rule.

WHY: Rules, the finding classifier, the CLI printer and the editor all
exchange the same records. A closed set of frozen dataclasses (one per
MetricType) means every consumer can dispatch on ``metric.type`` and
every record serializes the same way.

HOW: MetricType is a str Enum of the thirteen tags. Each metric class
carries its tag in a ``TYPE`` class variable and inherits ``to_dict()``
from Metric, which emits ``{"type": ..., <snake_case fields>}``.

RULES:
- Every MetricType has exactly one metric class (checked at import time)
- Metrics are frozen; rules build them once and never mutate them
- ``line_index`` is always the display anchor (0-based line number)
- Non-finite floats (an infinite CPS on a zero-length cue) serialize as
  None so the output stays valid JSON
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Type


class MetricType(str, Enum):
    MAX_CHARS = "MAX_CHARS"
    LEADING_WHITESPACE = "LEADING_WHITESPACE"
    CPS = "CPS"
    MAX_CPS = "MAX_CPS"
    MIN_CPS = "MIN_CPS"
    CPS_BALANCE = "CPS_BALANCE"
    MERGE_CANDIDATE = "MERGE_CANDIDATE"
    NUMBER_STYLE = "NUMBER_STYLE"
    PERCENT_STYLE = "PERCENT_STYLE"
    CAPITALIZATION = "CAPITALIZATION"
    PUNCTUATION = "PUNCTUATION"
    BASELINE = "BASELINE"
    MISSING_TRANSLATION = "MISSING_TRANSLATION"


class Severity(str, Enum):
    ERROR = "error"
    WARN = "warn"


class PunctuationRuleCode(str, Enum):
    """Sub-codes carried by PUNCTUATION metrics."""

    LOWERCASE_AFTER_PERIOD = "LOWERCASE_AFTER_PERIOD"
    MISSING_PUNCTUATION_BEFORE_CAPITAL = "MISSING_PUNCTUATION_BEFORE_CAPITAL"
    MISSING_COLON_BEFORE_QUOTE = "MISSING_COLON_BEFORE_QUOTE"
    MISSING_END_PUNCTUATION = "MISSING_END_PUNCTUATION"
    MISSING_CLOSING_QUOTE = "MISSING_CLOSING_QUOTE"
    MISSING_OPENING_QUOTE = "MISSING_OPENING_QUOTE"
    MISSING_OPENING_QUOTE_CONTINUATION = "MISSING_OPENING_QUOTE_CONTINUATION"


def _json_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


@dataclass(frozen=True)
class Metric:
    """Base class for all metric records."""

    TYPE: ClassVar[MetricType]

    @property
    def type(self) -> MetricType:
        return self.TYPE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-ready dict with a leading ``type`` key."""
        out: Dict[str, Any] = {"type": self.TYPE.value}
        for f in fields(self):
            out[f.name] = _json_value(getattr(self, f.name))
        return out


@dataclass(frozen=True)
class MaxCharsMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.MAX_CHARS

    line_index: int
    text: str
    max_allowed: int
    actual: int


@dataclass(frozen=True)
class LeadingWhitespaceMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.LEADING_WHITESPACE

    line_index: int
    index: int
    count: int
    text: str


@dataclass(frozen=True)
class CpsMetric(Metric):
    """Raw reading speed of one run, with the thresholds it was built under.

    The classifier turns it into MAX_CPS, MIN_CPS or nothing.
    """

    TYPE: ClassVar[MetricType] = MetricType.CPS

    line_index: int
    ts_line_index: int
    text: str
    cps: float
    duration_frames: int
    char_count: int
    max_cps: float
    min_cps: float


@dataclass(frozen=True)
class MaxCpsMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.MAX_CPS

    line_index: int
    ts_line_index: int
    text: str
    cps: float
    duration_frames: int
    char_count: int
    max_cps: float


@dataclass(frozen=True)
class MinCpsMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.MIN_CPS

    line_index: int
    ts_line_index: int
    text: str
    cps: float
    duration_frames: int
    char_count: int
    min_cps: float


@dataclass(frozen=True)
class CpsBalanceMetric(Metric):
    """Reading-speed jump between two adjacent runs, anchored on the faster."""

    TYPE: ClassVar[MetricType] = MetricType.CPS_BALANCE

    line_index: int
    ts_line_index: int
    cps: float
    neighbor_cps: float
    delta_cps: float
    text: str


@dataclass(frozen=True)
class MergeCandidateMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.MERGE_CANDIDATE

    line_index: int
    next_line_index: int
    text: str
    next_text: str
    gap_frames: int
    edit_distance: int
    message: str


@dataclass(frozen=True)
class NumberStyleMetric(Metric):
    """A number written as digits that should be words, or vice versa.

    ``found``/``expected`` are ``"digits"`` or ``"words"``; ``index`` is
    the character offset of ``token`` in ``text``.
    """

    TYPE: ClassVar[MetricType] = MetricType.NUMBER_STYLE

    line_index: int
    index: int
    value: int
    found: str
    expected: str
    token: str
    text: str


@dataclass(frozen=True)
class PercentStyleMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.PERCENT_STYLE

    line_index: int
    index: int
    value: float
    token: str
    text: str
    found: str = "word"
    expected: str = "symbol"


@dataclass(frozen=True)
class CapitalizationMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.CAPITALIZATION

    line_index: int
    index: int
    found: str
    expected: str
    token: str
    text: str


@dataclass(frozen=True)
class PunctuationMetric(Metric):
    """One punctuation or quote-balance problem between or within cues.

    Cross-cue codes carry the neighbouring cue in ``prev_*`` or
    ``next_*`` depending on which side the metric is anchored to.
    """

    TYPE: ClassVar[MetricType] = MetricType.PUNCTUATION

    line_index: int
    rule_code: PunctuationRuleCode
    detail: str
    text: str
    timestamp: str
    prev_text: Optional[str] = None
    prev_timestamp: Optional[str] = None
    next_text: Optional[str] = None
    next_timestamp: Optional[str] = None


@dataclass(frozen=True)
class BaselineMetric(Metric):
    """Drift between the current timestamp lines and the baseline's.

    ``reason`` is ``"missing"``, ``"extra"`` or ``"inlineText"``.
    """

    TYPE: ClassVar[MetricType] = MetricType.BASELINE

    line_index: int
    message: str
    reason: str
    timestamp: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    baseline_line_index: Optional[int] = None


@dataclass(frozen=True)
class MissingTranslationMetric(Metric):
    TYPE: ClassVar[MetricType] = MetricType.MISSING_TRANSLATION

    line_index: int
    block_type: str
    text: str
    source_line_index: Optional[int] = None


METRIC_CLASSES: Dict[MetricType, Type[Metric]] = {
    cls.TYPE: cls
    for cls in (
        MaxCharsMetric,
        LeadingWhitespaceMetric,
        CpsMetric,
        MaxCpsMetric,
        MinCpsMetric,
        CpsBalanceMetric,
        MergeCandidateMetric,
        NumberStyleMetric,
        PercentStyleMetric,
        CapitalizationMetric,
        PunctuationMetric,
        BaselineMetric,
        MissingTranslationMetric,
    )
}

if set(METRIC_CLASSES) != set(MetricType):
    raise RuntimeError(
        "Metric classes out of sync with MetricType: missing {}".format(
            sorted(t.value for t in set(MetricType) - set(METRIC_CLASSES))
        )
    )
