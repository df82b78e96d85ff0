"""MERGE_CANDIDATE — near-duplicate neighbouring cues close in time.

WHY: When a cue is re-typed with a tiny difference ("Gap text" then
"Gap text.") the viewer sees a flicker and a re-read. Such pairs should
usually be one timestamp span.

HOW: For each timed segment and its timed successor, checks the frame
gap, normalizes both texts and computes a bounded Levenshtein distance.
The distance routine gives up as soon as the length difference or a
row minimum exceeds the bound, so unrelated pairs cost almost nothing.

RULES:
- 0 <= gap_frames <= max_gap_frames, gap = next.start - current.end
- Normalization: trim, collapse whitespace, lowercase
- Identical normalized texts are not candidates (they are one run or a
  deliberate repeat); empty texts are never candidates
- Without ignore_empty_lines, a blank line between the current payload
  and the next timestamp line separates the pair
- Metric is anchored at the current segment
"""

from __future__ import annotations

import re
from typing import List, Optional

from caption_qa.core.blocks import has_empty_line_between
from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import MergeCandidateMetric, Metric, MetricType
from caption_qa.rules.base import BaseRule

MERGE_MESSAGE = (
    "These adjacent lines are very similar and close in time; "
    "consider merging them into one timestamp span."
)

_WS_RE = re.compile(r"\s+")


def normalize_for_compare(text: str) -> str:
    return _WS_RE.sub(" ", text.strip()).lower()


def bounded_levenshtein(a: str, b: str, max_distance: int) -> Optional[int]:
    """Levenshtein distance of a and b, or None if it exceeds max_distance.

    Uses two rolling rows; a row whose minimum already exceeds the bound
    ends the computation early.
    """
    if a == b:
        return 0
    if abs(len(a) - len(b)) > max_distance:
        return None

    prev = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        row = [i] + [0] * len(b)
        row_min = i
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            value = min(prev[j] + 1, row[j - 1] + 1, prev[j - 1] + cost)
            row[j] = value
            if value < row_min:
                row_min = value
        if row_min > max_distance:
            return None
        prev = row

    distance = prev[len(b)]
    return distance if distance <= max_distance else None


class MergeCandidateRule(BaseRule):
    metric_types = (MetricType.MERGE_CANDIDATE,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        idx = ctx.segment_index + 1
        if idx >= len(ctx.segments):
            return []
        cur = ctx.segment
        nxt = ctx.segments[idx]
        if not cur.is_timed or not nxt.is_timed:
            return []

        if not self.config.ignore_empty_lines and ctx.lines:
            if has_empty_line_between(
                ctx.line_source(), cur.payload_line_index, nxt.ts_line_index
            ):
                return []

        gap = nxt.start_frame - cur.end_frame
        if gap < 0 or gap > self.config.max_gap_frames:
            return []

        left = normalize_for_compare(cur.text)
        right = normalize_for_compare(nxt.text)
        if not left or not right or left == right:
            return []

        distance = bounded_levenshtein(left, right, self.config.max_edit_distance)
        if distance is None:
            return []

        return [
            MergeCandidateMetric(
                line_index=cur.line_index,
                next_line_index=nxt.line_index,
                text=cur.text,
                next_text=nxt.text,
                gap_frames=gap,
                edit_distance=distance,
                message=MERGE_MESSAGE,
            )
        ]
