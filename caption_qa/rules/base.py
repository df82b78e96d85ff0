"""Abstract base rule and the context helpers every rule shares.

WHY: Every rule consumes the same RuleContext but looks at different
parts of it. This base class enforces a consistent interface so the
engine, the rule-set builders and the CLI can work with any rule
generically.

HOW: BaseRule is an ABC with two requirements: a ``metric_types``
tuple and an ``evaluate()`` method. Rules are constructed from the
immutable AnalysisConfig and keep only read-only state. The helper
functions resolve "the text this rule should check" for both context
modes so individual rules do not branch on the mode themselves.

RULES:
- Subclasses MUST set ``metric_types`` and implement ``evaluate()``
- ``evaluate()`` returns a list; most rules return zero or one metric
- In LINE mode the text is the payload of the block whose timestamp
  line is at ``ctx.line_index``; other lines produce nothing
- Document-level rules run only at the first context (``ctx.is_first``)

To add a new rule:
1. Create a new file in rules/
2. Subclass BaseRule
3. Set metric_types and implement evaluate()
4. Register it in the RULES dict in rules/__init__.py
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from caption_qa.config import AnalysisConfig
from caption_qa.core.blocks import ParsedBlock, parse_block_at
from caption_qa.core.engine import ContextMode, RuleContext
from caption_qa.core.metrics import Metric, MetricType
from caption_qa.core.segments import CandidateLine


class BaseRule(ABC):
    """Abstract base for all rules."""

    metric_types: Tuple[MetricType, ...] = ()

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config if config is not None else AnalysisConfig()

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        """Return the metrics this rule produces for one context."""


def block_at_context(
    ctx: RuleContext, ignore_empty_lines: bool = False
) -> Optional[ParsedBlock]:
    """The timestamp block anchored at this context, if any.

    LINE mode parses at the context's line; SEGMENT mode parses at a
    timed segment's timestamp line. Script segments have no block.
    """
    if ctx.mode == ContextMode.LINE:
        return parse_block_at(ctx.line_source(), ctx.line_index, ignore_empty_lines)
    seg = ctx.segment
    if not seg.is_timed or not ctx.lines:
        return None
    return parse_block_at(ctx.line_source(), seg.ts_line_index, ignore_empty_lines)


def payload_lines(
    ctx: RuleContext, ignore_empty_lines: bool = False
) -> List[CandidateLine]:
    """Every on-screen line of the context, English-like or not.

    Timed segments give their payload, script segments their target
    lines, and LINE mode the payload of the block at this line.
    """
    if ctx.mode == ContextMode.LINE:
        block = block_at_context(ctx, ignore_empty_lines)
        if block is None:
            return []
        return [CandidateLine(block.payload_line_index, block.payload_text)]
    seg = ctx.segment
    if seg.block_type is None:
        if not seg.text:
            return []
        return [CandidateLine(seg.line_index, seg.text)]
    return list(seg.target_lines)


def target_lines(
    ctx: RuleContext, ignore_empty_lines: bool = False
) -> List[CandidateLine]:
    """Translation-candidate lines the style rules check.

    Like payload_lines(), except that timed segments only contribute
    their payload when it is English-like.
    """
    if ctx.mode == ContextMode.LINE:
        return payload_lines(ctx, ignore_empty_lines)
    return [c for c in ctx.segment.target_lines if c.text.strip()]
