"""Tracking double-quoted speech across consecutive cues.

WHY: Quoted speech often spans several cues. By subtitle convention
each continuing cue opens with a quote mark again, and only the last
one closes it. Whether a leading quote is a new opening or a
continuation therefore depends on every cue before it.

HOW: analyze_double_quote_span() inspects one cue given whether a quote
was open coming in. DoubleQuoteSpanTracker threads that one boolean
through a sequence of cues.

RULES:
- Only straight double quotes (") are tracked
- A cue wrapped in quotes with none open leaves none open
- A cue opening with a quote and not closing it leaves one open
- A cue ending with a quote while one is open closes it
- Anything else leaves the state unchanged
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_LEADING_RE = re.compile(r'^\s*"')
_TRAILING_RE = re.compile(r'"\s*$')


@dataclass(frozen=True)
class DoubleQuoteSpanInfo:
    quote_count: int
    has_leading_quote: bool
    has_trailing_quote: bool
    is_opening_at_start: bool
    is_closing_at_end: bool
    is_wrapped: bool
    leading_quote_is_continuation: bool
    next_quote_open: bool


def count_double_quotes(text: str) -> int:
    return text.count('"')


def has_leading_double_quote(text: str) -> bool:
    return _LEADING_RE.search(text) is not None


def has_trailing_double_quote(text: str) -> bool:
    return _TRAILING_RE.search(text) is not None


def analyze_double_quote_span(text: str, quote_open: bool) -> DoubleQuoteSpanInfo:
    """Classify the quotes of one cue and compute the state after it."""
    leading = has_leading_double_quote(text)
    trailing = has_trailing_double_quote(text)

    opening_at_start = leading and not quote_open
    closing_at_end = trailing and quote_open
    wrapped = leading and trailing and not quote_open

    next_open = quote_open
    if wrapped:
        next_open = False
    elif opening_at_start:
        next_open = not trailing
    elif closing_at_end:
        next_open = False

    return DoubleQuoteSpanInfo(
        quote_count=count_double_quotes(text),
        has_leading_quote=leading,
        has_trailing_quote=trailing,
        is_opening_at_start=opening_at_start,
        is_closing_at_end=closing_at_end,
        is_wrapped=wrapped,
        leading_quote_is_continuation=leading and quote_open,
        next_quote_open=next_open,
    )


class DoubleQuoteSpanTracker:
    """Carries the "quote open from a previous cue" flag between cues."""

    def __init__(self, initial_quote_open: bool = False) -> None:
        self._quote_open = initial_quote_open

    def inspect(self, text: str) -> DoubleQuoteSpanInfo:
        info = analyze_double_quote_span(text, self._quote_open)
        self._quote_open = info.next_quote_open
        return info

    def is_open(self) -> bool:
        return self._quote_open
