"""Analysis output assembly and rendering for the CLI and editor.

WHY: The CLI and any embedding editor must show exactly the same
records for the same text. Building the output in one place (rule set
choice, classification, type filtering) keeps both front ends thin.

HOW: build_analysis_output() picks the dialect's rule set, runs the
engine and either returns the raw metrics or classifies them into
findings. build_segments_output() exposes the segmenter for debugging.
The render_* helpers turn records into JSON or aligned text lines.

RULES:
- mode is "metrics" or "findings"; anything else raises ValueError
- enabled_rule_types filters the final records by type (post hoc),
  in addition to skipping disabled rules up front; a raw CPS metric
  passes when any of CPS, MAX_CPS or MIN_CPS is enabled
- Findings respect config.include_warnings
- JSON uses the records' snake_case keys; non-finite numbers are null
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import fields
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from caption_qa.config import AnalysisConfig
from caption_qa.core.engine import ANALYSIS_NEWS, analyze_text_by_type, segment_text
from caption_qa.core.metrics import Metric, MetricType
from caption_qa.core.segments import Segment, normalize_line_endings
from caption_qa.findings import Finding, classify, finding_label, sort_findings
from caption_qa.rules import (
    RULE_SET_FINDINGS,
    RULE_SET_METRICS,
    build_news_rules,
    build_subs_rules,
)

logger = logging.getLogger(__name__)

MODE_METRICS = "metrics"
MODE_FINDINGS = "findings"
OUTPUT_MODES = (MODE_METRICS, MODE_FINDINGS)

Record = Union[Metric, Finding]


def build_analysis_output(
    text: str,
    analysis_type: str,
    config: Optional[AnalysisConfig] = None,
    mode: str = MODE_FINDINGS,
) -> List[Record]:
    """Analyze text and return metrics or findings.

    WHY: Front ends want either the raw measurements (tuning thresholds,
    debugging) or editor-facing verdicts, from one call.

    HOW: Chooses build_news_rules() for "news" and build_subs_rules()
    with the matching rule set otherwise, runs analyze_text_by_type(),
    then classifies for findings mode and applies the type filter.

    RULES:
    - Records come back in engine order; callers sort for display
    - Unknown analysis_type raises ValueError from the segmenter

    Args:
        text: Document text.
        analysis_type: "subs" or "news".
        config: Analysis configuration (defaults when None).
        mode: "metrics" or "findings".

    Returns:
        List of Metric (metrics mode) or Finding (findings mode) objects.

    Raises:
        ValueError: If mode or analysis_type is unknown.
    """
    config = config if config is not None else AnalysisConfig()
    if mode not in OUTPUT_MODES:
        raise ValueError(
            "Unknown output mode '{}'. Available: {}".format(mode, ", ".join(OUTPUT_MODES))
        )

    if analysis_type == ANALYSIS_NEWS:
        rules = build_news_rules(config)
    else:
        rule_set = RULE_SET_METRICS if mode == MODE_METRICS else RULE_SET_FINDINGS
        rules = build_subs_rules(config, rule_set=rule_set)

    metrics = analyze_text_by_type(
        text, analysis_type, rules, ignore_empty_lines=config.ignore_empty_lines
    )
    logger.debug("%d metrics from %d rules (%s)", len(metrics), len(rules), analysis_type)

    records: List[Record]
    if mode == MODE_METRICS:
        records = list(metrics)
    else:
        records = list(classify(metrics, include_warnings=config.include_warnings))

    if config.enabled_rule_types is not None:
        records = [r for r in records if _type_enabled(r.type, config)]
    return records


def _type_enabled(metric_type: MetricType, config: AnalysisConfig) -> bool:
    # Raw CPS stands in for MAX_CPS and MIN_CPS in metrics mode.
    if metric_type == MetricType.CPS:
        return config.is_enabled(MetricType.CPS, MetricType.MAX_CPS, MetricType.MIN_CPS)
    return config.is_enabled(metric_type)


def build_segments_output(
    text: str,
    analysis_type: str,
    segment_index: Optional[int] = None,
    ignore_empty_lines: bool = False,
) -> List[Segment]:
    """Segments of text, or only the one at segment_index.

    An out-of-range or negative index yields an empty list.
    """
    segments = segment_text(normalize_line_endings(text), analysis_type, ignore_empty_lines)
    if segment_index is None:
        return segments
    if 0 <= segment_index < len(segments):
        return [segments[segment_index]]
    return []


def format_cli_number(key: str, value: Union[int, float]) -> str:
    """Format a numeric field for the text report.

    RULES:
    - Non-finite values print as str(value) ("inf", "nan")
    - Keys that are "index" or end in "index" print as integers
    - Everything else prints with one decimal
    """
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if key.lower().endswith("index"):
        return str(int(value))
    return "{:.1f}".format(value)


def to_json(records: Sequence[Any], compact: bool = False) -> str:
    """Serialize records (anything with to_dict()) to a JSON array."""
    payload = [r.to_dict() for r in records]
    if compact:
        return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return json.dumps(payload, ensure_ascii=False, indent=2)


# Fields shown in the header of a text line; everything else goes to details.
_HEADER_KEYS = ("type", "line_index", "severity", "instruction")


def _format_field(key: str, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return "{}={}".format(key, value)
    return "{}={}".format(key, format_cli_number(key, value))


def _details(record: Record) -> str:
    metric = record.metric if isinstance(record, Finding) else record
    parts = []
    # Raw field values, not to_dict(): the text report prints inf as "inf".
    for f in fields(metric):
        value = getattr(metric, f.name)
        if f.name in _HEADER_KEYS or value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        parts.append(_format_field(f.name, value))
    return " ".join(parts)


def render_text(records: Sequence[Record]) -> str:
    """Human-readable report, one record per line (1-based line numbers).

    Findings are sorted with sort_findings(); metrics keep engine order.
    """
    if not records:
        return "No issues found."

    if all(isinstance(r, Finding) for r in records):
        ordered: Sequence[Record] = sort_findings(r for r in records if isinstance(r, Finding))
    else:
        ordered = records

    out: List[str] = []
    for record in ordered:
        line_no = record.line_index + 1
        details = _details(record)
        if isinstance(record, Finding):
            out.append(
                "L{:<5} {:<5} {}: {}".format(
                    line_no, record.severity.value, finding_label(record), record.instruction
                )
            )
        else:
            out.append("L{:<5} {}".format(line_no, record.type.value))
        if details:
            out.append("       {}".format(details))
    return "\n".join(out)


def count_by_severity(records: Sequence[Record]) -> Dict[str, int]:
    """Severity tallies for the status summary ({} for metrics)."""
    counts: Dict[str, int] = {}
    for record in records:
        if isinstance(record, Finding):
            counts[record.severity.value] = counts.get(record.severity.value, 0) + 1
    return counts
