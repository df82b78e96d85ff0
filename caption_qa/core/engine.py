"""Rule execution engine.

WHY: Rules must run identically whether the caller hands over raw lines
(one context per line) or parsed segments (one context per segment).
One canonical RuleContext, tagged with its ContextMode, lets each rule
handle both shapes without guessing from duck-typed attributes.

HOW: analyze_lines() wraps every raw line in a single-line Segment and
runs the rules in LINE mode. analyze_segments() runs them over parsed
segments in SEGMENT mode. analyze_text_by_type() normalizes line
endings, picks the dialect segmenter and then defers to
analyze_segments().

RULES:
- Contexts are visited in document order; inside a context the rules
  run in list order, and results are concatenated in that order
- Rules are stateless with respect to calls; any state they hold was
  built from the immutable config at construction time
- When a document has no segments, one empty segment at line 0 stands
  in so document-level rules (baseline, punctuation) still run
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from caption_qa.core.blocks import ListLineSource
from caption_qa.core.metrics import Metric
from caption_qa.core.segments import (
    CandidateLine,
    Segment,
    normalize_line_endings,
    parse_news,
    parse_subs,
    split_lines,
)

if TYPE_CHECKING:
    from caption_qa.rules.base import BaseRule

logger = logging.getLogger(__name__)

ANALYSIS_SUBS = "subs"
ANALYSIS_NEWS = "news"


class ContextMode(str, Enum):
    LINE = "line"
    SEGMENT = "segment"


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at for one line or segment.

    Attributes:
        mode: LINE for per-line analysis, SEGMENT for parsed segments.
        segment: The segment under evaluation (a one-line segment in
                 LINE mode).
        segment_index: Position of ``segment`` in ``segments``.
        segments: All segments of the document.
        lines: All raw lines of the document (may be empty when the
               caller only supplied segments).
        source_text: The full normalized document text, when known.
    """

    mode: ContextMode
    segment: Segment
    segment_index: int
    segments: Sequence[Segment]
    lines: Tuple[str, ...] = ()
    source_text: Optional[str] = None

    @property
    def line_index(self) -> int:
        return self.segment.line_index

    @property
    def is_first(self) -> bool:
        """True for the context document-level rules run at."""
        return self.segment_index == 0

    def line_source(self) -> ListLineSource:
        return ListLineSource(self.lines)


def _run(contexts: List[RuleContext], rules: Sequence["BaseRule"]) -> List[Metric]:
    metrics: List[Metric] = []
    for ctx in contexts:
        for rule in rules:
            metrics.extend(rule.evaluate(ctx))
    return metrics


def analyze_lines(text: str, rules: Sequence["BaseRule"]) -> List[Metric]:
    """Run rules once per raw line of text (LINE mode).

    Args:
        text: Document text; line endings are normalized first.
        rules: Rules to run, in order.

    Returns:
        All metrics, line order then rule order.
    """
    lines = tuple(split_lines(text))
    segments = [
        Segment(
            line_index=i,
            text=line,
            line_index_end=i,
            target_lines=(CandidateLine(i, line),),
        )
        for i, line in enumerate(lines)
    ]
    source_text = normalize_line_endings(text)
    contexts = [
        RuleContext(
            mode=ContextMode.LINE,
            segment=segment,
            segment_index=i,
            segments=segments,
            lines=lines,
            source_text=source_text,
        )
        for i, segment in enumerate(segments)
    ]
    metrics = _run(contexts, rules)
    logger.debug("analyze_lines: %d lines, %d metrics", len(lines), len(metrics))
    return metrics


def analyze_segments(
    segments: Sequence[Segment],
    rules: Sequence["BaseRule"],
    lines: Optional[Sequence[str]] = None,
    source_text: Optional[str] = None,
) -> List[Metric]:
    """Run rules once per segment (SEGMENT mode).

    Args:
        segments: Parsed segments, in document order.
        rules: Rules to run, in order.
        lines: Raw document lines, needed by rules that look around a
               segment (runs, blank-line checks, baseline).
        source_text: Full document text, if the caller has it.

    Returns:
        All metrics, segment order then rule order.
    """
    line_tuple = tuple(lines) if lines is not None else ()
    contexts = [
        RuleContext(
            mode=ContextMode.SEGMENT,
            segment=segment,
            segment_index=i,
            segments=segments,
            lines=line_tuple,
            source_text=source_text,
        )
        for i, segment in enumerate(segments)
    ]
    metrics = _run(contexts, rules)
    logger.debug(
        "analyze_segments: %d segments, %d metrics", len(segments), len(metrics)
    )
    return metrics


def segment_text(
    text: str, analysis_type: str, ignore_empty_lines: bool = False
) -> List[Segment]:
    """Segment text with the parser for analysis_type ("subs" or "news").

    Raises:
        ValueError: If analysis_type is not a known dialect.
    """
    if analysis_type == ANALYSIS_SUBS:
        return parse_subs(text, ignore_empty_lines)
    if analysis_type == ANALYSIS_NEWS:
        return parse_news(text)
    raise ValueError(
        "Unknown analysis type '{}'. Available: {}, {}".format(
            analysis_type, ANALYSIS_SUBS, ANALYSIS_NEWS
        )
    )


def analyze_text_by_type(
    text: str,
    analysis_type: str,
    rules: Sequence["BaseRule"],
    ignore_empty_lines: bool = False,
) -> List[Metric]:
    """Normalize, segment with the dialect parser and run rules.

    WHY: This is the single entry point the CLI and editor use; both
    must see the same segments for the same text.

    HOW: Normalizes \\r\\n / \\r, segments the text, substitutes one
    empty segment at line 0 when nothing parsed, then runs
    analyze_segments() with the raw lines attached.

    RULES:
    - "subs" uses parse_subs(), "news" uses parse_news()
    - An unknown analysis_type raises ValueError before any rule runs

    Args:
        text: Document text.
        analysis_type: "subs" or "news".
        rules: Rules to run, in order.
        ignore_empty_lines: Passed through to the caption segmenter.

    Returns:
        All metrics produced by the rules.

    Raises:
        ValueError: If analysis_type is unknown.
    """
    normalized = normalize_line_endings(text)
    segments = segment_text(normalized, analysis_type, ignore_empty_lines)
    if not segments:
        segments = [Segment(line_index=0, text="")]
    return analyze_segments(
        segments,
        rules,
        lines=normalized.split("\n"),
        source_text=normalized,
    )
