"""NUMBER_STYLE — digits vs. words for numbers.

WHY: House style spells out zero through ten and any number that opens
a sentence, and uses digits for everything larger. Editors mix the two
constantly, especially when captions are typed from dictation.

HOW: Two passes over each target line. The digit pass flags digit
tokens that are <= 10 or sentence-initial. The word pass finds runs of
number words (a closed vocabulary of ones, teens, tens and scale
words), converts each run with parse_number_words() and flags values
> 10 that are not sentence-initial.

RULES:
- Comma-grouped thousands ("1,000") are one token
- Decimals, times ("3:30"), currency ("$3", "NT$1 million"), percents
  ("5%", "5 percent") and scaled amounts ("3 million") are left alone
- "N-year-old" / "N year old" age adjectives are exempt either way
- A word run that does not form a well-formed number ("five-two-seven")
  is not a number and is not flagged
- Sentence start = line start (skipping spaces and opening quotes or
  brackets) or right after . ! ? (skipping spaces and closers)
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from caption_qa.core.engine import RuleContext
from caption_qa.core.metrics import Metric, MetricType, NumberStyleMetric
from caption_qa.rules.base import BaseRule, target_lines

SMALL: Dict[str, int] = {
    "zero": 0,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
    "thirteen": 13,
    "fourteen": 14,
    "fifteen": 15,
    "sixteen": 16,
    "seventeen": 17,
    "eighteen": 18,
    "nineteen": 19,
}

TENS: Dict[str, int] = {
    "twenty": 20,
    "thirty": 30,
    "forty": 40,
    "fifty": 50,
    "sixty": 60,
    "seventy": 70,
    "eighty": 80,
    "ninety": 90,
}

SCALES: Dict[str, int] = {
    "hundred": 100,
    "thousand": 1000,
    "million": 1000000,
    "billion": 1000000000,
    "trillion": 1000000000000,
}

_WORD_LIST = "|".join(list(SMALL) + list(TENS) + list(SCALES) + ["and"])

WORD_NUMBER_RE = re.compile(
    r"\b(?:{0})(?:[\s-]+(?:{0}))*\b".format(_WORD_LIST), re.IGNORECASE
)
DIGIT_TOKEN_RE = re.compile(r"\b\d{1,3}(?:,\d{3})+\b|\b\d+(?:\.\d+)?\b")
WORD_SPLIT_RE = re.compile(r"[\s-]+")
LEADING_AND_RE = re.compile(r"^(?:and[\s-]+)+", re.IGNORECASE)
TRAILING_AND_RE = re.compile(r"(?:[\s-]+and)+$", re.IGNORECASE)

AGE_ADJECTIVE_RE = re.compile(r"(?:\s*-|\s+)year(?:-|\s+)old\b", re.IGNORECASE)
CURRENCY_BEFORE_RE = re.compile(r"\$ ?$")
PERCENT_AFTER_RE = re.compile(r"\s*%|\s+percent\b", re.IGNORECASE)
SCALE_AFTER_RE = re.compile(r"[\s-]+(?:million|billion|trillion)\b", re.IGNORECASE)

_OPENERS = "\"'([{"
_CLOSERS = "\"')]}"
_SENTENCE_END = ".!?"


def is_sentence_start(text: str, index: int) -> bool:
    """True if the token at index opens a sentence."""
    if all(ch in " \t" or ch in _OPENERS for ch in text[:index]):
        return True
    i = index - 1
    while i >= 0 and text[i] in " \t":
        i -= 1
    while i >= 0 and text[i] in _CLOSERS:
        i -= 1
    return i >= 0 and text[i] in _SENTENCE_END


def _is_time_token(text: str, start: int, end: int) -> bool:
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    return before == ":" or after == ":"


def _is_age_adjective(text: str, end: int) -> bool:
    return AGE_ADJECTIVE_RE.match(text, end) is not None


def parse_number_words(words: Sequence[str]) -> Optional[int]:
    """Convert number words to an int using short-scale composition.

    WHY: Only a well-formed number phrase should be judged by value;
    digit-by-digit dictation ("five two seven") is not a number.

    HOW: Tens and ones add to the running group, "hundred" multiplies
    the group, and thousand/million/billion/trillion multiply the group
    and flush it into the total. "and" is ignored.

    RULES:
    - Returns None for unknown words or an empty phrase
    - Returns None for ill-formed sequences: ones or teens after ones or
      teens, tens after ones/teens/tens, a teen after tens, two
      "hundred"s in one group, or two scale words in a row

    Args:
        words: Individual words of the phrase.

    Returns:
        The numeric value, or None.
    """
    total = 0
    current = 0
    last: Optional[str] = None
    seen = False

    for raw in words:
        w = raw.lower()
        if w == "and":
            continue

        if w in SMALL:
            value = SMALL[w]
            if last in ("ones", "teens"):
                return None
            if last == "tens" and (value == 0 or value >= 10):
                return None
            current += value
            last = "teens" if value >= 10 else "ones"
        elif w in TENS:
            if last in ("ones", "teens", "tens"):
                return None
            current += TENS[w]
            last = "tens"
        elif w == "hundred":
            if last in ("hundred", "scale") or current >= 100:
                return None
            if current == 0:
                current = 1
            current *= 100
            last = "hundred"
        elif w in SCALES:
            if last == "scale":
                return None
            if current == 0:
                current = 1
            total += current * SCALES[w]
            current = 0
            last = "scale"
        else:
            return None
        seen = True

    if not seen:
        return None
    return total + current


def _digit_metrics(text: str, anchor: int) -> List[Metric]:
    metrics: List[Metric] = []
    for m in DIGIT_TOKEN_RE.finditer(text):
        token = m.group(0)
        start, end = m.start(), m.end()
        if "." in token:
            continue
        if _is_time_token(text, start, end) or _is_age_adjective(text, end):
            continue
        if CURRENCY_BEFORE_RE.search(text, 0, start):
            continue
        if PERCENT_AFTER_RE.match(text, end) or SCALE_AFTER_RE.match(text, end):
            continue

        value = int(token.replace(",", ""))
        if value <= 10 or is_sentence_start(text, start):
            metrics.append(
                NumberStyleMetric(
                    line_index=anchor,
                    index=start,
                    value=value,
                    found="digits",
                    expected="words",
                    token=token,
                    text=text,
                )
            )
    return metrics


def _word_metrics(text: str, anchor: int) -> List[Metric]:
    metrics: List[Metric] = []
    for m in WORD_NUMBER_RE.finditer(text):
        phrase = m.group(0)
        lead = LEADING_AND_RE.match(phrase)
        offset = lead.end() if lead else 0
        phrase = TRAILING_AND_RE.sub("", phrase[offset:])
        if not phrase:
            continue
        start = m.start() + offset
        end = start + len(phrase)

        words = [w for w in WORD_SPLIT_RE.split(phrase) if w]
        # A leading scale word qualifies the number before it ("3 million").
        if words[0].lower() in SCALES:
            continue
        value = parse_number_words(words)
        if value is None or value <= 10:
            continue
        if _is_age_adjective(text, end) or is_sentence_start(text, start):
            continue

        metrics.append(
            NumberStyleMetric(
                line_index=anchor,
                index=start,
                value=value,
                found="words",
                expected="digits",
                token=phrase,
                text=text,
            )
        )
    return metrics


class NumberStyleRule(BaseRule):
    metric_types = (MetricType.NUMBER_STYLE,)

    def evaluate(self, ctx: RuleContext) -> List[Metric]:
        metrics: List[Metric] = []
        for line in target_lines(ctx, self.config.ignore_empty_lines):
            metrics.extend(_digit_metrics(line.text, line.line_index))
            metrics.extend(_word_metrics(line.text, line.line_index))
        return metrics
