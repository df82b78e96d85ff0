"""Tests for the reading-speed (CPS) rule family.

WHY: Reading speed must be computed once per merged run, anchored at
the run's first block, with zero durations reported as infinite.

HOW: Short timed documents run through each CPS rule.

RULES:
- cps = chars * 30 / duration_frames
- Only the first block of a run produces a metric
"""

import math

import pytest

from caption_qa.config import AnalysisConfig
from caption_qa.core.engine import analyze_lines
from caption_qa.core.metrics import MetricType
from caption_qa.rules.cps import (
    CpsBalanceRule,
    CpsRule,
    MaxCpsRule,
    MinCpsRule,
    compute_cps,
)

CONFIG = AnalysisConfig(max_cps=17.0, min_cps=5.0, cps_balance_delta=5.0)

FAST = "x" * 30  # 30 chars in one second
SLOW = "Hi."  # 3 chars in one second


class TestComputeCps:
    def test_basic(self):
        assert compute_cps(30, 30) == 30.0
        assert compute_cps(14, 60) == 7.0

    def test_zero_duration_is_infinite(self):
        assert math.isinf(compute_cps(5, 0))


class TestMaxMinCps:
    """Threshold rules fire only outside [min_cps, max_cps]."""

    def test_fast_cue(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:02:00", FAST)])
        metrics = run(text, [MaxCpsRule(CONFIG), MinCpsRule(CONFIG)])
        assert [m.type for m in metrics] == [MetricType.MAX_CPS]
        assert metrics[0].cps == 30.0
        assert metrics[0].line_index == 1
        assert metrics[0].ts_line_index == 0

    def test_slow_cue(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:02:00", SLOW)])
        metrics = run(text, [MaxCpsRule(CONFIG), MinCpsRule(CONFIG)])
        assert [m.type for m in metrics] == [MetricType.MIN_CPS]
        assert metrics[0].cps == 3.0

    def test_comfortable_cue(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:02:00", "Ten chars.")])
        assert run(text, [MaxCpsRule(CONFIG), MinCpsRule(CONFIG)]) == []

    def test_zero_duration_is_max_cps(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:01:00", "Flash")])
        metrics = run(text, [MaxCpsRule(CONFIG)])
        assert len(metrics) == 1
        assert math.isinf(metrics[0].cps)
        assert metrics[0].to_dict()["cps"] is None


class TestRunAwareCps:
    """Merged runs are measured once, over their full duration."""

    def test_run_measured_once(self, make_subs, run):
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", "Same text here"),
                ("00:00:02:00", "00:00:03:00", "Same text here"),
            ],
            blank_between=False,
        )
        metrics = run(text, [CpsRule(CONFIG)])
        assert len(metrics) == 1
        assert metrics[0].duration_frames == 60
        assert metrics[0].cps == 7.0
        assert metrics[0].line_index == 1

    def test_blank_line_splits_run(self, make_subs, run):
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", "Same text here"),
                ("00:00:02:00", "00:00:03:00", "Same text here"),
            ]
        )
        assert len(run(text, [CpsRule(CONFIG)])) == 2

        ignore = AnalysisConfig(ignore_empty_lines=True)
        metrics = run(text, [CpsRule(ignore)], ignore=True)
        assert len(metrics) == 1
        assert metrics[0].duration_frames == 60

    def test_line_and_segment_mode_agree(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:02:00", FAST)])
        by_segment = run(text, [CpsRule(CONFIG)])
        by_line = analyze_lines(text, [CpsRule(CONFIG)])
        assert by_segment == by_line


class TestCpsBalance:
    def test_jump_anchored_at_faster_run(self, make_subs, run):
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", SLOW),
                ("00:00:02:00", "00:00:03:00", FAST),
            ]
        )
        metrics = run(text, [CpsBalanceRule(CONFIG)])
        assert len(metrics) == 1
        m = metrics[0]
        assert m.line_index == 4
        assert m.cps == 30.0
        assert m.neighbor_cps == 3.0
        assert m.delta_cps == 27.0

    def test_small_difference_ignored(self, make_subs, run):
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", "Ten chars."),
                ("00:00:02:00", "00:00:03:00", "Twelve chars"),
            ]
        )
        assert run(text, [CpsBalanceRule(CONFIG)]) == []

    def test_last_run_has_no_neighbor(self, make_subs, run):
        text = make_subs([("00:00:01:00", "00:00:02:00", FAST)])
        assert run(text, [CpsBalanceRule(CONFIG)]) == []

    def test_continuation_rows_count_as_one_run(self, make_subs, run):
        same = "Same text here"  # 14 chars over three rows (90 frames)
        text = make_subs(
            [
                ("00:00:01:00", "00:00:02:00", same),
                ("00:00:02:00", "00:00:03:00", same),
                ("00:00:03:00", "00:00:04:00", same),
                ("00:00:04:00", "00:00:05:00", FAST),
            ],
            blank_between=False,
        )
        metrics = run(text, [CpsBalanceRule(CONFIG)])
        assert len(metrics) == 1
        m = metrics[0]
        assert (m.line_index, m.ts_line_index) == (7, 6)
        assert m.cps == 30.0
        assert m.neighbor_cps == pytest.approx(14 * 30 / 90)
        assert m.delta_cps == pytest.approx(30.0 - 14 * 30 / 90)

    def test_skips_unparseable_timestamp_to_next_run(self, run):
        text = "\n".join(
            [
                "00:00:01:00\t00:00:02:00",
                SLOW,
                "00:00:02:00\t00:00:02:45",
                "Broken cue",
                "00:00:03:00\t00:00:04:00",
                FAST,
            ]
        )
        metrics = run(text, [CpsBalanceRule(CONFIG)])
        assert len(metrics) == 1
        assert metrics[0].line_index == 5
        assert metrics[0].neighbor_cps == 3.0
