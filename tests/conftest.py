"""Shared test fixtures for the caption_qa test suite.

WHY: Most rule tests need a small timed-caption document or a news
script. Building them from (start, end, text) tuples keeps each test
focused on the cue text it is about instead of tab-separated layout.

HOW: make_subs() joins cues as "start<TAB>end[<TAB>inline]" + payload,
separated by blank lines (or not, for run/merge tests). run_rules()
runs rules over a document with the same entry point the CLI uses.

RULES:
- Frame rate is 30, so "00:00:01:00" is frame 30
- Cue tuples are (start, end, text) or (start, end, text, inline)
- The news fixture pairs one VO and one SUPER block plus an
  untranslated VO source
"""

from typing import Callable, List, Sequence, Tuple

import pytest

from caption_qa.core.engine import analyze_text_by_type
from caption_qa.core.metrics import Metric


def build_subs(cues: Sequence[Tuple[str, ...]], blank_between: bool = True) -> str:
    lines: List[str] = []
    for cue in cues:
        start, end, text = cue[0], cue[1], cue[2]
        ts = "{}\t{}".format(start, end)
        if len(cue) > 3:
            ts += "\t{}".format(cue[3])
        lines.append(ts)
        lines.append(text)
        if blank_between:
            lines.append("")
    return "\n".join(lines)


def run_rules(
    text: str, rules: Sequence[object], analysis_type: str = "subs", ignore: bool = False
) -> List[Metric]:
    return analyze_text_by_type(text, analysis_type, rules, ignore_empty_lines=ignore)


@pytest.fixture
def make_subs() -> Callable[..., str]:
    """Factory: build a timed-caption document from cue tuples."""
    return build_subs


@pytest.fixture
def run() -> Callable[..., List[Metric]]:
    """Factory: run rules over a document (subs by default)."""
    return run_rules


# ---------------------------------------------------------------------------
# Punctuation fixture: eight cues, five known problems
# ---------------------------------------------------------------------------

PUNCTUATION_PAYLOADS = [
    "Hello.",
    "this should be capitalized.",
    "This continues",
    "Next Starts Capital.",
    "He said",
    '"Hello there."',
    '"Unclosed.',
    "This line lacks terminal",
]


@pytest.fixture
def punctuation_doc() -> str:
    """Timed document exercising every sentence-boundary rule once."""
    cues = []
    for i, payload in enumerate(PUNCTUATION_PAYLOADS):
        cues.append(
            (
                "00:00:{:02d}:00".format(i + 1),
                "00:00:{:02d}:00".format(i + 2),
                payload,
                "Marker",
            )
        )
    return build_subs(cues)


# ---------------------------------------------------------------------------
# News script fixture
# ---------------------------------------------------------------------------

NEWS_SCRIPT = "\n".join(
    [
        "001_0001 Opening",           # 0 scene marker
        "VO:",                        # 1 label
        "今天天气很好。",              # 2 VO source
        "The weather is fine today.",  # 3 VO target
        "",                           # 4
        "/*SUPER 北京 */",             # 5 SUPER source in comment
        "Beijing",                    # 6 SUPER target
        "",                           # 7
        "VO:",                        # 8 label
        "没有翻译的句子。",             # 9 VO source, no target
    ]
)


@pytest.fixture
def news_script() -> str:
    return NEWS_SCRIPT

