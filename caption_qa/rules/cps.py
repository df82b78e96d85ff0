"""Reading-speed rules: CPS, MAX_CPS, MIN_CPS and CPS_BALANCE.

WHY: Viewers need time to read a caption. Characters per second over
the whole on-screen run is the standard legibility measure; a sudden
jump between neighbouring cues is its own problem even when both are
within limits.

HOW: Each rule resolves the block at the context, skips it if it only
continues the previous run, merges it forward into its full run and
computes ``cps = chars * 30 / duration_frames``. CpsBalanceRule also
finds the next run by scanning forward from the end of this one.

RULES:
- One evaluation per run, at its first block, never once per raw row
- A zero-duration run has infinite CPS
- Metrics anchor to the payload line of the run's first block and
  record its timestamp line in ts_line_index
- CPS_BALANCE fires when |cps_a - cps_b| >= cps_balance_delta and is
  anchored to the faster run; ties go to the current run
- The same code path serves LINE and SEGMENT contexts
"""

from __future__ import annotations

import math
from typing import List, Optional, Tuple

from caption_qa.core.blocks import (
    MergedRun,
    ParsedBlock,
    find_next_block,
    is_continuation_of_previous,
    merge_forward,
)
from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import (
    CpsBalanceMetric,
    CpsMetric,
    MaxCpsMetric,
    Metric,
    MetricType,
    MinCpsMetric,
)
from caption_qa.core.timecode import FRAME_RATE
from caption_qa.rules.base import BaseRule, block_at_context


def compute_cps(char_count: int, duration_frames: int) -> float:
    if duration_frames <= 0:
        return math.inf
    return char_count * FRAME_RATE / duration_frames


def run_cps(run: MergedRun) -> float:
    return compute_cps(len(run.payload_text), run.duration_frames)


class _RunRule(BaseRule):
    """Shared run resolution for the reading-speed rules."""

    def _first_run(self, ctx: RuleContext) -> Optional[Tuple[ParsedBlock, MergedRun]]:
        ignore = self.config.ignore_empty_lines
        block = block_at_context(ctx, ignore)
        if block is None:
            return None
        src = ctx.line_source()
        if is_continuation_of_previous(src, block, ignore):
            return None
        return block, merge_forward(src, block, ignore)


class CpsRule(_RunRule):
    """Raw CPS for every run; the classifier decides what it means."""

    metric_types = (MetricType.CPS,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        resolved = self._first_run(ctx)
        if resolved is None:
            return []
        block, run = resolved
        return [
            CpsMetric(
                line_index=block.payload_line_index,
                ts_line_index=block.ts_line_index,
                text=run.payload_text,
                cps=run_cps(run),
                duration_frames=run.duration_frames,
                char_count=len(run.payload_text),
                max_cps=self.config.max_cps,
                min_cps=self.config.min_cps,
            )
        ]


class MaxCpsRule(_RunRule):
    metric_types = (MetricType.MAX_CPS,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        resolved = self._first_run(ctx)
        if resolved is None:
            return []
        block, run = resolved
        cps = run_cps(run)
        if not cps > self.config.max_cps:
            return []
        return [
            MaxCpsMetric(
                line_index=block.payload_line_index,
                ts_line_index=block.ts_line_index,
                text=run.payload_text,
                cps=cps,
                duration_frames=run.duration_frames,
                char_count=len(run.payload_text),
                max_cps=self.config.max_cps,
            )
        ]


class MinCpsRule(_RunRule):
    metric_types = (MetricType.MIN_CPS,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        resolved = self._first_run(ctx)
        if resolved is None:
            return []
        block, run = resolved
        cps = run_cps(run)
        if not cps < self.config.min_cps:
            return []
        return [
            MinCpsMetric(
                line_index=block.payload_line_index,
                ts_line_index=block.ts_line_index,
                text=run.payload_text,
                cps=cps,
                duration_frames=run.duration_frames,
                char_count=len(run.payload_text),
                min_cps=self.config.min_cps,
            )
        ]


class CpsBalanceRule(_RunRule):
    """Flags a large reading-speed jump between adjacent runs."""

    metric_types = (MetricType.CPS_BALANCE,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        resolved = self._first_run(ctx)
        if resolved is None:
            return []
        block_a, run_a = resolved

        ignore = self.config.ignore_empty_lines
        src = ctx.line_source()
        block_b = find_next_block(src, run_a.end_ts_line_index + 1, ignore)
        if block_b is None:
            return []
        run_b = merge_forward(src, block_b, ignore)

        cps_a = run_cps(run_a)
        cps_b = run_cps(run_b)
        delta = abs(cps_a - cps_b)
        if not delta >= self.config.cps_balance_delta:
            return []

        if cps_a >= cps_b:
            faster_block, faster_run, cps, neighbor = block_a, run_a, cps_a, cps_b
        else:
            faster_block, faster_run, cps, neighbor = block_b, run_b, cps_b, cps_a

        return [
            CpsBalanceMetric(
                line_index=faster_block.payload_line_index,
                ts_line_index=faster_block.ts_line_index,
                cps=cps,
                neighbor_cps=neighbor,
                delta_cps=delta,
                text=faster_run.payload_text,
            )
        ]
