"""PERCENT_STYLE — "5 percent" should be written "5%"."""

from __future__ import annotations

import re
from typing import List

from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import Metric, MetricType, PercentStyleMetric
from caption_qa.rules.base import BaseRule, target_lines

# Comma-grouped thousands first so "1,000" is one token, not "1" and "000".
NUMBER_TOKEN_RE = re.compile(r"\b\d{1,3}(?:,\d{3})+\b|\b\d+(?:\.\d+)?\b")
PERCENT_WORD_RE = re.compile(r"\s+percent\b", re.IGNORECASE)


class PercentStyleRule(BaseRule):
    metric_types = (MetricType.PERCENT_STYLE,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        metrics: List[Metric] = []
        for line in target_lines(ctx, self.config.ignore_empty_lines):
            text = line.text
            for m in NUMBER_TOKEN_RE.finditer(text):
                word = PERCENT_WORD_RE.match(text, m.end())
                if not word:
                    continue
                metrics.append(
                    PercentStyleMetric(
                        line_index=line.line_index,
                        index=m.start(),
                        value=float(m.group(0).replace(",", "")),
                        token=m.group(0) + word.group(0),
                        text=text,
                    )
                )
        return metrics
