"""MAX_CHARS — on-screen lines longer than the configured limit.

WHY: A caption line that does not fit the safe area gets wrapped or
cut off by the playout system.

HOW: Measures every on-screen line of the context and emits one metric
per line, carrying ``config.max_chars`` as the limit. classify() keeps
only the lines over it, so metrics mode shows every measurement.

RULES:
- Caption dialect: the payload line of each block
- News dialect: only the target lines of SUPER segments; VO narration
  is spoken, not shown
- Length is counted on the raw line, leading whitespace included
"""

from __future__ import annotations

from typing import List

from caption_qa.core.engine import ContextMode, RuleContext
from caption_qa.core.metrics import MaxCharsMetric, Metric, MetricType
from caption_qa.core.segments import BLOCK_VO
from caption_qa.rules.base import BaseRule, payload_lines


class MaxCharsRule(BaseRule):
    metric_types = (MetricType.MAX_CHARS,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        if ctx.mode == ContextMode.SEGMENT and ctx.segment.block_type == BLOCK_VO:
            return []

        limit = self.config.max_chars
        metrics: List[Metric] = []
        for line in payload_lines(ctx, self.config.ignore_empty_lines):
            metrics.append(
                MaxCharsMetric(
                    line_index=line.line_index,
                    text=line.text,
                    max_allowed=limit,
                    actual=len(line.text),
                )
            )
        return metrics
