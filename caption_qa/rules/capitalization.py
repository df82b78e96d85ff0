"""CAPITALIZATION — enforced spellings of configured terms.

WHY: Some words carry a house spelling that editors routinely get wrong
("Indigenous", brand names like "OpenAI"). A configurable list keeps
the rule useful across productions.

HOW: Each term is compiled once into a case-insensitive, word-bounded
pattern. Any occurrence in a target line whose spelling differs from
the term is reported with the term as the expected form.

RULES:
- Matching is case-insensitive; only the exact spelling passes
- Terms are matched on word boundaries ("indigenously" is not flagged)
- Falls back to the default term list when the config carries none
- One metric per offending occurrence, in term order then text order
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple

from caption_qa.config import DEFAULT_CAPITALIZATION_TERMS, AnalysisConfig
from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import CapitalizationMetric, Metric, MetricType
from caption_qa.rules.base import BaseRule, target_lines


def _compile_term(term: str) -> Pattern[str]:
    return re.compile(r"(?<!\w){}(?!\w)".format(re.escape(term)), re.IGNORECASE)


class CapitalizationRule(BaseRule):
    metric_types = (MetricType.CAPITALIZATION,)

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config)
        terms = self.config.capitalization_terms or DEFAULT_CAPITALIZATION_TERMS
        self._patterns: Tuple[Tuple[str, Pattern[str]], ...] = tuple(
            (term, _compile_term(term)) for term in terms if term.strip()
        )

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        metrics: List[Metric] = []
        for line in target_lines(ctx, self.config.ignore_empty_lines):
            for term, pattern in self._patterns:
                for m in pattern.finditer(line.text):
                    found = m.group(0)
                    if found == term:
                        continue
                    metrics.append(
                        CapitalizationMetric(
                            line_index=line.line_index,
                            index=m.start(),
                            found=found,
                            expected=term,
                            token=found,
                            text=line.text,
                        )
                    )
        return metrics
