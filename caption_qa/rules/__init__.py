"""Rule registry and rule-set assembly — pluggable check hub.

WHY: The CLI and editor need a single place that decides which rules
run for which dialect. A central dict makes it trivial to add a check:
create the rule class, import it here, add one line.

HOW: RULES maps snake_case keys to rule *classes*. build_subs_rules()
and build_news_rules() instantiate the ordered rule list for a dialect
from one AnalysisConfig, skipping rules whose metric types are disabled.

RULES:
- Keys are snake_case identifiers; values are BaseRule subclasses
- Rule order is part of the output contract (metrics are emitted in
  rule order within each context)
- The "metrics" subs set emits raw CPS instead of MAX_CPS/MIN_CPS
- BASELINE only runs when the config carries baseline text
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Type

from caption_qa.config import AnalysisConfig
from caption_qa.core.metrics import MetricType
from caption_qa.rules.baseline import BaselineRule
from caption_qa.rules.capitalization import CapitalizationRule
from caption_qa.rules.cps import CpsBalanceRule, CpsRule, MaxCpsRule, MinCpsRule
from caption_qa.rules.leading_whitespace import LeadingWhitespaceRule
from caption_qa.rules.max_chars import MaxCharsRule
from caption_qa.rules.merge_candidate import MergeCandidateRule
from caption_qa.rules.missing_translation import MissingTranslationRule
from caption_qa.rules.number_style import NumberStyleRule
from caption_qa.rules.percent_style import PercentStyleRule
from caption_qa.rules.punctuation import PunctuationRule

if TYPE_CHECKING:
    from caption_qa.rules.base import BaseRule

RULE_SET_FINDINGS = "findings"
RULE_SET_METRICS = "metrics"

RULES: Dict[str, Type[BaseRule]] = {
    "max_chars": MaxCharsRule,
    "leading_whitespace": LeadingWhitespaceRule,
    "cps": CpsRule,
    "max_cps": MaxCpsRule,
    "min_cps": MinCpsRule,
    "cps_balance": CpsBalanceRule,
    "merge_candidate": MergeCandidateRule,
    "number_style": NumberStyleRule,
    "percent_style": PercentStyleRule,
    "capitalization": CapitalizationRule,
    "punctuation": PunctuationRule,
    "baseline": BaselineRule,
    "missing_translation": MissingTranslationRule,
}

_SUBS_FINDINGS_ORDER = (
    "max_chars",
    "leading_whitespace",
    "cps_balance",
    "merge_candidate",
    "capitalization",
    "percent_style",
    "number_style",
    "punctuation",
    "max_cps",
    "min_cps",
    "baseline",
)

_NEWS_ORDER = (
    "max_chars",
    "leading_whitespace",
    "number_style",
    "percent_style",
    "capitalization",
    "missing_translation",
)


def _build(keys: Sequence[str], config: AnalysisConfig) -> List[BaseRule]:
    rules: List[BaseRule] = []
    for key in keys:
        cls = RULES[key]
        if key == "baseline" and config.baseline_text is None:
            continue
        if not config.is_enabled(*cls.metric_types):
            continue
        rules.append(cls(config))
    return rules


def build_subs_rules(
    config: Optional[AnalysisConfig] = None,
    rule_set: str = RULE_SET_FINDINGS,
) -> List[BaseRule]:
    """Ordered rules for the timed-caption dialect.

    Args:
        config: Analysis configuration (defaults when None).
        rule_set: "findings" (MAX_CPS/MIN_CPS) or "metrics" (raw CPS).

    Returns:
        Instantiated rules in execution order.

    Raises:
        ValueError: If rule_set is unknown.
    """
    config = config if config is not None else AnalysisConfig()
    if rule_set == RULE_SET_FINDINGS:
        return _build(_SUBS_FINDINGS_ORDER, config)
    if rule_set != RULE_SET_METRICS:
        raise ValueError(
            "Unknown rule set '{}'. Available: {}, {}".format(
                rule_set, RULE_SET_FINDINGS, RULE_SET_METRICS
            )
        )

    rules: List[BaseRule] = []
    for key in _SUBS_FINDINGS_ORDER:
        if key == "min_cps":
            continue
        if key == "max_cps":
            if config.is_enabled(MetricType.CPS, MetricType.MAX_CPS, MetricType.MIN_CPS):
                rules.append(CpsRule(config))
            continue
        rules.extend(_build((key,), config))
    return rules


def build_news_rules(config: Optional[AnalysisConfig] = None) -> List[BaseRule]:
    """Ordered rules for the news-script dialect."""
    config = config if config is not None else AnalysisConfig()
    return _build(_NEWS_ORDER, config)
