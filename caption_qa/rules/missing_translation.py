"""MISSING_TRANSLATION — news source lines with no English target."""

from __future__ import annotations

from typing import List

from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import Metric, MetricType, MissingTranslationMetric
from caption_qa.core.segments import BLOCK_SUPER, BLOCK_VO
from caption_qa.rules.base import BaseRule


class MissingTranslationRule(BaseRule):
    """Flags a VO/SUPER segment whose source text has no target lines.

    Timed segments and LINE-mode contexts never carry a block type, so
    the rule is silent for the caption dialect.
    """

    metric_types = (MetricType.MISSING_TRANSLATION,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        seg = ctx.segment
        if seg.block_type not in (BLOCK_VO, BLOCK_SUPER):
            return []
        source_text = seg.source_text.strip()
        if not source_text or seg.target_lines:
            return []
        return [
            MissingTranslationMetric(
                line_index=seg.line_index,
                block_type=seg.block_type,
                text=source_text,
                source_line_index=(
                    seg.source_lines[0].line_index if seg.source_lines else None
                ),
            )
        ]
