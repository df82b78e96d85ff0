"""BASELINE — integrity check of timestamp lines against a trusted transcript.

WHY: Editors polish caption text but must never drop, add or retime a
cue relative to the delivered baseline. Comparing positions line by
line breaks down after the first insertion, so the two timestamp
sequences are aligned instead.

HOW: Both documents are reduced to TimestampEntry lists (start, end,
inline text, line index). A longest-common-subsequence alignment on the
(start, end) key finds the largest order-preserving set of matching
timestamps. Unmatched baseline entries are "missing", unmatched current
entries are "extra", and matched pairs whose inline text differs are
"inlineText" mismatches.

RULES:
- Baseline entries are parsed once, when the rule is constructed
- Runs once per document, at the first context
- Only timestamp lines whose timecodes both parse become entries
- Missing-entry anchor, in order of preference:
  1. the baseline line index, if it exists in the current document
  2. the current line of the nearest matched entry after it
  3. the current line of the nearest matched entry before it
  4. the last line of the current document
- Empty baseline: every current entry is extra. Empty current: every
  baseline entry is missing
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from caption_qa.config import AnalysisConfig
from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import BaselineMetric, Metric, MetricType
from caption_qa.core.segments import split_lines
from caption_qa.core.timecode import (
    extract_inline_text,
    format_timestamp,
    match_timestamp_line,
    parse_timecode_to_frames,
)
from caption_qa.rules.base import BaseRule

MISSING_MESSAGE = "Missing timestamp line vs baseline"
EXTRA_MESSAGE = "Extra timestamp line vs baseline"
INLINE_MESSAGE = "Inline source text mismatch vs baseline"
EMPTY_PLACEHOLDER = "(empty)"


@dataclass(frozen=True)
class TimestampEntry:
    start: str
    end: str
    inline_text: str
    line_index: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.start, self.end)

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.start, self.end)


def parse_timestamp_entries(lines: Sequence[str]) -> List[TimestampEntry]:
    """One entry per timestamp line with two valid timecodes."""
    entries: List[TimestampEntry] = []
    for i, line in enumerate(lines):
        m = match_timestamp_line(line)
        if not m:
            continue
        start, end = m.group("start"), m.group("end")
        if parse_timecode_to_frames(start) is None or parse_timecode_to_frames(end) is None:
            continue
        entries.append(TimestampEntry(start, end, extract_inline_text(line), i))
    return entries


def lcs_pairs(
    baseline: Sequence[TimestampEntry], current: Sequence[TimestampEntry]
) -> List[Tuple[int, int]]:
    """Matched (baseline_index, current_index) pairs of an LCS on entry keys.

    WHY: The alignment must tolerate inserted and deleted cues without
    mis-reporting everything after the first difference.

    HOW: Builds the (m+1) x (n+1) LCS length table over suffixes, then
    walks it from the top-left corner, preferring to skip a baseline
    entry when both directions keep the same length.

    RULES:
    - Pairs are strictly increasing in both indices
    - Returned in ascending order
    """
    m, n = len(baseline), len(current)
    table = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m - 1, -1, -1):
        for j in range(n - 1, -1, -1):
            if baseline[i].key == current[j].key:
                table[i][j] = table[i + 1][j + 1] + 1
            else:
                table[i][j] = max(table[i + 1][j], table[i][j + 1])

    pairs: List[Tuple[int, int]] = []
    i = j = 0
    while i < m and j < n:
        if baseline[i].key == current[j].key:
            pairs.append((i, j))
            i += 1
            j += 1
        elif table[i + 1][j] >= table[i][j + 1]:
            i += 1
        else:
            j += 1
    return pairs


def _missing_anchor(
    baseline_idx: int,
    entry: TimestampEntry,
    pairs: Sequence[Tuple[int, int]],
    current: Sequence[TimestampEntry],
    line_count: int,
) -> int:
    if entry.line_index < line_count:
        return entry.line_index
    for b, c in pairs:
        if b > baseline_idx:
            return current[c].line_index
    for b, c in reversed(pairs):
        if b < baseline_idx:
            return current[c].line_index
    return max(0, line_count - 1)


class BaselineRule(BaseRule):
    """Aligns the current document's timestamps with the baseline's."""

    metric_types = (MetricType.BASELINE,)

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config)
        self.baseline_entries: Tuple[TimestampEntry, ...] = tuple(
            parse_timestamp_entries(split_lines(self.config.baseline_text or ""))
        )

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        if not ctx.is_first:
            return []
        lines = ctx.lines or tuple(split_lines(ctx.source_text or ""))
        return self.compare(lines)

    def compare(self, lines: Sequence[str]) -> List[Metric]:
        """Compare lines against the baseline; metrics in alignment order."""
        baseline = self.baseline_entries
        current = parse_timestamp_entries(lines)
        pairs = lcs_pairs(baseline, current)
        line_count = len(lines)

        metrics: List[Metric] = []
        b_next = c_next = 0
        for b_match, c_match in list(pairs) + [(len(baseline), len(current))]:
            for b in range(b_next, b_match):
                entry = baseline[b]
                metrics.append(
                    BaselineMetric(
                        line_index=_missing_anchor(b, entry, pairs, current, line_count),
                        message=MISSING_MESSAGE,
                        reason="missing",
                        timestamp=entry.timestamp,
                        expected=entry.timestamp,
                        baseline_line_index=entry.line_index,
                    )
                )
            for c in range(c_next, c_match):
                entry = current[c]
                metrics.append(
                    BaselineMetric(
                        line_index=entry.line_index,
                        message=EXTRA_MESSAGE,
                        reason="extra",
                        timestamp=entry.timestamp,
                        actual=entry.timestamp,
                    )
                )
            if b_match < len(baseline):
                expected, actual = baseline[b_match], current[c_match]
                if expected.inline_text != actual.inline_text:
                    metrics.append(
                        BaselineMetric(
                            line_index=actual.line_index,
                            message=INLINE_MESSAGE,
                            reason="inlineText",
                            timestamp=actual.timestamp,
                            expected=expected.inline_text or EMPTY_PLACEHOLDER,
                            actual=actual.inline_text or EMPTY_PLACEHOLDER,
                            baseline_line_index=expected.line_index,
                        )
                    )
            b_next, c_next = b_match + 1, c_match + 1
        return metrics
