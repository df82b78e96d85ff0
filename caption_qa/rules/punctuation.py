"""PUNCTUATION — sentence boundaries and quote balance across cues.

WHY: A sentence in captions is split across cues, so most punctuation
errors are only visible between neighbours: a cue that ends without a
period before one that starts a new sentence, a lowercase start after
a period, a quote that opens and never closes. These checks need the
whole cue sequence, not one cue at a time.

HOW: Collects every parseable block's trimmed payload as a Cue, runs a
DoubleQuoteSpanTracker over them, then applies three groups of checks:
per-cue quote balance, cross-cue boundaries between adjacent cues, and
a final-cue terminal punctuation check.

RULES:
- Runs once per document, at the first context
- Per-cue checks report each distinct text once
- Cross-cue checks only compare adjacent cues: the lines between the
  earlier payload and the later timestamp line must all be blank, and
  the two texts must differ
- A capital after an unpunctuated cue is allowed for "I", acronyms,
  quotes and configured proper nouns or abbreviations
- A period ending in a configured abbreviation does not end a sentence
- MISSING_CLOSING_QUOTE is not reported when the next cue continues
  the quote; MISSING_OPENING_QUOTE is not reported when a quote was
  already open entering the cue
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from caption_qa.config import AnalysisConfig
from caption_qa.core.blocks import ListLineSource, parse_block_at
from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import (
    Metric,
    MetricType,
    PunctuationMetric,
    PunctuationRuleCode,
)
from caption_qa.core.timecode import format_timestamp, match_timestamp_line
from caption_qa.rules.base import BaseRule
from caption_qa.rules.quote_span import DoubleQuoteSpanInfo, DoubleQuoteSpanTracker

OPEN_QUOTE_RE = re.compile(r"^\s*([\"'])")
DOUBLE_QUOTE_START_RE = re.compile(r'^\s*"')
I_PRONOUN_RE = re.compile(r"^\s*I(\b|')")
ACRONYM_RE = re.compile(
    r"^\s*([\"'\(\[\{])?\s*(?:[A-Z]{2,}(?:'s\b|\b)|(?:[A-Z]\.){2,}[A-Z]?(?:'s\b)?)"
)
# Terminal punctuation, ellipsis, em/en dash or "---", then optional closers.
SENTENCE_END_RE = re.compile(
    r"(?:\.{3}|[.!?:…—–]|---)(?:[\"'\)\]\}]+)?\s*$"
)
ASCII_ALPHA_RE = re.compile(r"[A-Za-z]")
LAST_WORD_RE = re.compile(r"(\S+?)[\"'\)\]\}]*$")

_PUNCT_AFTER_QUOTE = ".,!?;:…)]}"

DETAILS = {
    PunctuationRuleCode.LOWERCASE_AFTER_PERIOD: (
        "CURR starts lowercase after PREV ends with '.'."
    ),
    PunctuationRuleCode.MISSING_PUNCTUATION_BEFORE_CAPITAL: (
        "CURR lacks sentence-ending punctuation and NEXT starts capital."
    ),
    PunctuationRuleCode.MISSING_COLON_BEFORE_QUOTE: (
        "CURR should end with ':' before a quoted NEXT."
    ),
    PunctuationRuleCode.MISSING_END_PUNCTUATION: "CURR lacks terminal punctuation.",
    PunctuationRuleCode.MISSING_CLOSING_QUOTE: (
        "CURR starts with an opening quote but does not close it on the same line."
    ),
    PunctuationRuleCode.MISSING_OPENING_QUOTE: (
        "CURR ends with a quote but does not open it."
    ),
    PunctuationRuleCode.MISSING_OPENING_QUOTE_CONTINUATION: (
        "CURR should start with an opening quote when quoted speech continues from PREV."
    ),
}


@dataclass(frozen=True)
class Cue:
    start: str
    end: str
    text: str
    line_index: int
    ts_line_index: int

    @property
    def timestamp(self) -> str:
        return format_timestamp(self.start, self.end)


@dataclass(frozen=True)
class UnmatchedDoubleQuote:
    kind: str  # "open" or "close"
    index: int


def collect_cues(lines: Sequence[str], ignore_empty_lines: bool = False) -> List[Cue]:
    """Every parseable block as a Cue with its trimmed payload."""
    src = ListLineSource(lines)
    cues: List[Cue] = []
    for i in range(len(lines)):
        block = parse_block_at(src, i, ignore_empty_lines)
        if block is None:
            continue
        m = match_timestamp_line(lines[i])
        cues.append(
            Cue(
                start=m.group("start"),
                end=m.group("end"),
                text=block.payload_text.strip(),
                line_index=block.payload_line_index,
                ts_line_index=block.ts_line_index,
            )
        )
    return cues


def first_alpha_case(text: str) -> Optional[str]:
    """"lower" or "upper" for the first ASCII letter, None if there is none."""
    m = ASCII_ALPHA_RE.search(text)
    if not m:
        return None
    return "lower" if m.group(0).islower() else "upper"


def ends_sentence_boundary(text: str) -> bool:
    return SENTENCE_END_RE.search(text.rstrip()) is not None


def find_unmatched_double_quote(text: str) -> Optional[UnmatchedDoubleQuote]:
    """The odd one out when a cue has an odd number of double quotes.

    The last quote is classified "open" if a word character follows
    it, "close" if it ends the text or sits between a word character
    and a space or punctuation mark, and "open" otherwise.
    """
    indices = [i for i, ch in enumerate(text) if ch == '"']
    if not indices or len(indices) % 2 == 0:
        return None

    index = indices[-1]
    prev = text[index - 1] if index > 0 else ""
    nxt = text[index + 1] if index + 1 < len(text) else ""

    if nxt and nxt.isalnum():
        return UnmatchedDoubleQuote("open", index)
    if not nxt:
        return UnmatchedDoubleQuote("close", index)
    if prev and prev.isalnum() and (nxt.isspace() or nxt in _PUNCT_AFTER_QUOTE):
        return UnmatchedDoubleQuote("close", index)
    return UnmatchedDoubleQuote("open", index)


def has_unclosed_starting_single_quote(text: str) -> bool:
    m = OPEN_QUOTE_RE.match(text)
    if not m or m.group(1) != "'":
        return False
    return text.find("'", m.start(1) + 1) < 0


def matching_open_for_trailing_quote(text: str) -> Optional[int]:
    """Index of the quote opened by a trailing '"', if the text has one."""
    trimmed = text.rstrip()
    if not trimmed.endswith('"'):
        return None
    index = trimmed.rfind('"', 0, len(trimmed) - 1)
    return index if index >= 0 else None


def _compile_starts(terms: Iterable[str], flags: int = 0) -> Tuple[Pattern[str], ...]:
    return tuple(
        re.compile(r"^\s*[\"'\(\[\{]?\s*" + re.escape(t.strip()) + r"(?!\w)", flags)
        for t in terms
        if t.strip()
    )


class PunctuationRule(BaseRule):
    """Document-level punctuation and quote-balance checks."""

    metric_types = (MetricType.PUNCTUATION,)

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        super().__init__(config)
        self._start_exemptions = _compile_starts(self.config.proper_nouns) + _compile_starts(
            self.config.abbreviations, re.IGNORECASE
        )
        self._abbreviations: Set[str] = {
            a.strip().lower() for a in self.config.abbreviations if a.strip()
        }

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        if not ctx.is_first or not ctx.lines:
            return []
        return self.collect(ctx.lines)

    def collect(self, lines: Sequence[str]) -> List[Metric]:
        cues = collect_cues(lines, self.config.ignore_empty_lines)
        if not cues:
            return []

        tracker = DoubleQuoteSpanTracker()
        open_before: List[bool] = []
        spans: List[DoubleQuoteSpanInfo] = []
        for cue in cues:
            open_before.append(tracker.is_open())
            spans.append(tracker.inspect(cue.text))

        adjacent = [
            self._adjacent(lines, cues[j], cues[j + 1]) for j in range(len(cues) - 1)
        ]

        metrics: List[Metric] = []
        metrics.extend(self._closing_quote_metrics(cues, spans, adjacent))
        metrics.extend(self._opening_quote_metrics(cues, open_before))
        for j in range(len(cues) - 1):
            if adjacent[j]:
                metrics.extend(self._pair_metrics(cues[j], cues[j + 1], spans[j], spans[j + 1]))
        metrics.extend(self._end_metrics(cues[-1]))
        return metrics

    def _adjacent(self, lines: Sequence[str], prev: Cue, nxt: Cue) -> bool:
        return all(not lines[i].strip() for i in range(prev.line_index + 1, nxt.ts_line_index))

    def _closing_quote_metrics(
        self,
        cues: Sequence[Cue],
        spans: Sequence[DoubleQuoteSpanInfo],
        adjacent: Sequence[bool],
    ) -> List[Metric]:
        metrics: List[Metric] = []
        reported: Set[str] = set()
        for j, cue in enumerate(cues):
            if cue.text in reported:
                continue
            unmatched = find_unmatched_double_quote(cue.text)
            unclosed = (
                unmatched is not None and unmatched.kind == "open"
            ) or has_unclosed_starting_single_quote(cue.text)
            if not unclosed:
                continue
            if j + 1 < len(cues) and adjacent[j] and spans[j + 1].leading_quote_is_continuation:
                continue
            reported.add(cue.text)
            metrics.append(self._metric(PunctuationRuleCode.MISSING_CLOSING_QUOTE, cue))
        return metrics

    def _opening_quote_metrics(
        self, cues: Sequence[Cue], open_before: Sequence[bool]
    ) -> List[Metric]:
        metrics: List[Metric] = []
        reported: Set[str] = set()
        for j, cue in enumerate(cues):
            if cue.text in reported:
                continue
            unmatched = find_unmatched_double_quote(cue.text)
            if unmatched is None or unmatched.kind != "close" or open_before[j]:
                continue
            reported.add(cue.text)
            metrics.append(self._metric(PunctuationRuleCode.MISSING_OPENING_QUOTE, cue))
        return metrics

    def _pair_metrics(
        self,
        prev: Cue,
        nxt: Cue,
        prev_span: DoubleQuoteSpanInfo,
        next_span: DoubleQuoteSpanInfo,
    ) -> List[Metric]:
        if nxt.text == prev.text:
            return []
        case = first_alpha_case(nxt.text)
        if case is None:
            return []

        prev_trim = prev.text.rstrip()
        prev_boundary = ends_sentence_boundary(prev_trim)
        next_quote = OPEN_QUOTE_RE.match(nxt.text) is not None
        metrics: List[Metric] = []

        if (
            prev_trim.endswith(".")
            and not prev_trim.endswith("...")
            and case == "lower"
            and not self._ends_with_abbreviation(prev_trim)
        ):
            metrics.append(
                self._metric(PunctuationRuleCode.LOWERCASE_AFTER_PERIOD, nxt, prev=prev)
            )

        if (
            case == "upper"
            and not prev_boundary
            and not next_quote
            and not I_PRONOUN_RE.match(nxt.text)
            and not ACRONYM_RE.match(nxt.text)
            and not any(p.match(nxt.text) for p in self._start_exemptions)
        ):
            metrics.append(
                self._metric(
                    PunctuationRuleCode.MISSING_PUNCTUATION_BEFORE_CAPITAL, prev, nxt=nxt
                )
            )

        if (
            prev_span.next_quote_open
            and not prev_boundary
            and not DOUBLE_QUOTE_START_RE.match(nxt.text)
        ):
            metrics.append(
                self._metric(
                    PunctuationRuleCode.MISSING_OPENING_QUOTE_CONTINUATION, nxt, prev=prev
                )
            )

        if (
            next_quote
            and not next_span.leading_quote_is_continuation
            and not prev_trim.endswith(":")
            and not prev_boundary
            and matching_open_for_trailing_quote(prev_trim) is None
        ):
            metrics.append(
                self._metric(PunctuationRuleCode.MISSING_COLON_BEFORE_QUOTE, prev, nxt=nxt)
            )

        return metrics

    def _end_metrics(self, last: Cue) -> List[Metric]:
        if not last.text or first_alpha_case(last.text) is None:
            return []
        if ends_sentence_boundary(last.text):
            return []
        return [self._metric(PunctuationRuleCode.MISSING_END_PUNCTUATION, last)]

    def _ends_with_abbreviation(self, text: str) -> bool:
        if not self._abbreviations:
            return False
        m = LAST_WORD_RE.search(text)
        return m is not None and m.group(1).lower() in self._abbreviations

    def _metric(
        self,
        code: PunctuationRuleCode,
        cue: Cue,
        prev: Optional[Cue] = None,
        nxt: Optional[Cue] = None,
    ) -> PunctuationMetric:
        return PunctuationMetric(
            line_index=cue.line_index,
            rule_code=code,
            detail=DETAILS[code],
            text=cue.text,
            timestamp=cue.timestamp,
            prev_text=prev.text if prev else None,
            prev_timestamp=prev.timestamp if prev else None,
            next_text=nxt.text if nxt else None,
            next_timestamp=nxt.timestamp if nxt else None,
        )
