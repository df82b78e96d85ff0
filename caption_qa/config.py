"""Configuration defaults, .env loading and the AnalysisConfig snapshot.

WHY: Thresholds (line length, reading speed, merge tolerances) differ
between productions. Keeping them in one place, overridable from the
environment, lets editors and CI runs share the same defaults without
touching code, while each analysis call still receives one immutable
snapshot so repeated runs are deterministic.

HOW: python-dotenv loads the .env file on import. Module-level defaults
read CAPTION_QA_* environment variables and fall back to the documented
values when a variable is missing or malformed. AnalysisConfig is a
frozen dataclass whose defaults are those constants.

RULES:
- FRAME_RATE is fixed at 30 and is not configurable
- Invalid environment values fall back silently to the default
- AnalysisConfig is frozen; derive variants with dataclasses.replace()
- Rule type names are validated against MetricType by parse_rule_types()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from dotenv import load_dotenv

from caption_qa.core.metrics import MetricType
from caption_qa.core.timecode import FRAME_RATE  # noqa: F401 (re-exported)

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------------
# Rule thresholds
# ---------------------------------------------------------------------------

DEFAULT_MAX_CHARS = _env_int("CAPTION_QA_MAX_CHARS", 54)
DEFAULT_MAX_CPS = _env_float("CAPTION_QA_MAX_CPS", 17.0)
DEFAULT_MIN_CPS = _env_float("CAPTION_QA_MIN_CPS", 5.0)
DEFAULT_CPS_BALANCE_DELTA = 5.0
DEFAULT_MAX_GAP_FRAMES = _env_int("CAPTION_QA_MAX_GAP_FRAMES", 30)
DEFAULT_MAX_EDIT_DISTANCE = _env_int("CAPTION_QA_MAX_EDIT_DISTANCE", 2)
DEFAULT_IGNORE_EMPTY_LINES = _env_bool("CAPTION_QA_IGNORE_EMPTY_LINES", False)

# Used by the capitalization rule when no term list is configured.
DEFAULT_CAPITALIZATION_TERMS: Tuple[str, ...] = (
    "Indigenous",
    "Bodhisattva",
    "Bodhisattvas",
)

ANALYSIS_TYPES = ("subs", "news")


def parse_rule_types(names: Optional[Iterable[str]]) -> Optional[FrozenSet[MetricType]]:
    """Convert rule type names (e.g. "MAX_CPS") into a frozenset of MetricType.

    WHY: The CLI and editor pass rule filters as plain strings. A typo
    should fail loudly at the edge instead of silently disabling a rule.

    HOW: Upper-cases each name and looks it up in MetricType.

    RULES:
    - None or an empty iterable means "all rules enabled" and returns None
    - Unknown names raise ValueError listing the valid names

    Args:
        names: Iterable of rule type names, or None.

    Returns:
        A frozenset of MetricType, or None when no filter is requested.

    Raises:
        ValueError: If any name is not a known metric type.
    """
    if names is None:
        return None
    result = set()
    for name in names:
        key = name.strip().upper()
        try:
            result.add(MetricType(key))
        except ValueError:
            raise ValueError(
                "Unknown rule type '{}'. Available: {}".format(
                    name, ", ".join(t.value for t in MetricType)
                )
            ) from None
    return frozenset(result) if result else None


@dataclass(frozen=True)
class AnalysisConfig:
    """Immutable configuration snapshot for one analysis call.

    Attributes:
        ignore_empty_lines: Treat blank lines as non-breaking for payload
            lookup and run continuity.
        max_chars: Maximum characters per on-screen line.
        max_cps: Reading speed above which MAX_CPS fires.
        min_cps: Reading speed below which MIN_CPS fires.
        cps_balance_delta: Minimum CPS difference between adjacent runs
            that triggers CPS_BALANCE.
        max_gap_frames: Largest gap between cues considered for merging.
        max_edit_distance: Largest edit distance considered "near duplicate".
        enabled_rule_types: Restrict rules/output to these types (None = all).
        capitalization_terms: Terms whose exact spelling is enforced.
        proper_nouns: Words that may start a cue with a capital mid-sentence.
        abbreviations: Abbreviations ending in '.' that do not end a sentence.
        baseline_text: Trusted transcript for the baseline integrity rule.
        include_warnings: Keep warn-severity findings after classification.
    """

    ignore_empty_lines: bool = DEFAULT_IGNORE_EMPTY_LINES
    max_chars: int = DEFAULT_MAX_CHARS
    max_cps: float = DEFAULT_MAX_CPS
    min_cps: float = DEFAULT_MIN_CPS
    cps_balance_delta: float = DEFAULT_CPS_BALANCE_DELTA
    max_gap_frames: int = DEFAULT_MAX_GAP_FRAMES
    max_edit_distance: int = DEFAULT_MAX_EDIT_DISTANCE
    enabled_rule_types: Optional[FrozenSet[MetricType]] = None
    capitalization_terms: Tuple[str, ...] = field(default=DEFAULT_CAPITALIZATION_TERMS)
    proper_nouns: Tuple[str, ...] = ()
    abbreviations: Tuple[str, ...] = ()
    baseline_text: Optional[str] = None
    include_warnings: bool = True

    @classmethod
    def from_env(cls, **overrides: object) -> "AnalysisConfig":
        """Snapshot built from the CAPTION_QA_* variables as they are now.

        The module defaults are read once at import; this re-reads the
        environment so a long-lived process picks up changes. Keyword
        overrides win over the environment.
        """
        values = {
            "ignore_empty_lines": _env_bool(
                "CAPTION_QA_IGNORE_EMPTY_LINES", DEFAULT_IGNORE_EMPTY_LINES
            ),
            "max_chars": _env_int("CAPTION_QA_MAX_CHARS", DEFAULT_MAX_CHARS),
            "max_cps": _env_float("CAPTION_QA_MAX_CPS", DEFAULT_MAX_CPS),
            "min_cps": _env_float("CAPTION_QA_MIN_CPS", DEFAULT_MIN_CPS),
            "max_gap_frames": _env_int("CAPTION_QA_MAX_GAP_FRAMES", DEFAULT_MAX_GAP_FRAMES),
            "max_edit_distance": _env_int(
                "CAPTION_QA_MAX_EDIT_DISTANCE", DEFAULT_MAX_EDIT_DISTANCE
            ),
        }
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]

    def is_enabled(self, *types: MetricType) -> bool:
        """True if any of the given metric types is enabled (all are by default)."""
        if self.enabled_rule_types is None:
            return True
        return any(t in self.enabled_rule_types for t in types)
