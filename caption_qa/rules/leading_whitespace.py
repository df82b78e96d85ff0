"""LEADING_WHITESPACE — caption lines that start with stray spaces."""

from __future__ import annotations

import re
from typing import List

from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import LeadingWhitespaceMetric, Metric, MetricType
from caption_qa.rules.base import BaseRule, payload_lines

LEADING_WS_RE = re.compile(r"^\s+")


class LeadingWhitespaceRule(BaseRule):
    metric_types = (MetricType.LEADING_WHITESPACE,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        metrics: List[Metric] = []
        for line in payload_lines(ctx, self.config.ignore_empty_lines):
            if not line.text.strip():
                continue
            m = LEADING_WS_RE.match(line.text)
            if not m:
                continue
            metrics.append(
                LeadingWhitespaceMetric(
                    line_index=line.line_index,
                    index=0,
                    count=len(m.group(0)),
                    text=line.text,
                )
            )
        return metrics
