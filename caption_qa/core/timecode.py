"""Timecode ↔ frame arithmetic and timestamp-line matching.

WHY: Every timing check (reading speed, merge gaps, run contiguity) works
on integer frame counts. Frames compare exactly, so contiguity tests like
"this cue starts where the previous one ended" never suffer float error.

HOW: TIMECODE_RE validates a single HH:MM:SS:FF timecode. TIMESTAMP_LINE_RE
finds a "start<TAB>end" pair anywhere in a line (leading markers are
tolerated) with optional tab-separated inline text after it.

RULES:
- Frame rate is fixed at 30: frames = h*108000 + m*1800 + s*30 + f
- FF must be in [0, 30); anything else is not a timecode
- Parsing never raises; invalid input returns None
"""

from __future__ import annotations

import re
from typing import Optional

FRAME_RATE = 30

TIMECODE_RE = re.compile(r"^(?P<h>\d{2}):(?P<m>\d{2}):(?P<s>\d{2}):(?P<f>\d{2})$")

TIMESTAMP_LINE_RE = re.compile(
    r"(?P<start>\d{2}:\d{2}:\d{2}:\d{2})\t+(?P<end>\d{2}:\d{2}:\d{2}:\d{2})"
    r"(?:\t+(?P<inline>.*))?$"
)


def parse_timecode_to_frames(tc: str) -> Optional[int]:
    """Convert an HH:MM:SS:FF timecode into a frame count at 30 fps.

    Returns None if the string is not a timecode or the frame field is
    out of range.
    """
    m = TIMECODE_RE.match(tc.strip())
    if not m:
        return None
    hours = int(m.group("h"))
    minutes = int(m.group("m"))
    seconds = int(m.group("s"))
    frames = int(m.group("f"))
    if frames >= FRAME_RATE:
        return None
    return (
        hours * 3600 * FRAME_RATE
        + minutes * 60 * FRAME_RATE
        + seconds * FRAME_RATE
        + frames
    )


def frames_to_timecode(frames: int) -> str:
    """Format a frame count back into HH:MM:SS:FF."""
    seconds, ff = divmod(max(0, frames), FRAME_RATE)
    minutes, ss = divmod(seconds, 60)
    hh, mm = divmod(minutes, 60)
    return "{:02d}:{:02d}:{:02d}:{:02d}".format(hh, mm, ss, ff)


def is_timestamp_line(line: str) -> bool:
    """True if the line contains a start<TAB>end timecode pair."""
    return TIMESTAMP_LINE_RE.search(line) is not None


def match_timestamp_line(line: str) -> Optional[re.Match]:
    return TIMESTAMP_LINE_RE.search(line)


def extract_inline_text(line: str) -> str:
    """Return the trimmed inline text after the timecode pair ("" if none)."""
    m = TIMESTAMP_LINE_RE.search(line)
    if not m or m.group("inline") is None:
        return ""
    return m.group("inline").strip()


def format_timestamp(start: str, end: str) -> str:
    return "{} -> {}".format(start, end)
