"""Timestamp block parsing, run merging and continuation detection.

WHY: In the timed dialect one on-screen cue can be backed by several raw
timestamp rows that repeat the same payload with back-to-back timing.
Reading-speed checks must see that cue once, with its full duration;
counting it per row would both duplicate findings and understate the
time the viewer has to read it.

HOW: parse_block_at() turns one timestamp line plus the payload line
below it into a ParsedBlock. merge_forward() extends a block into a
MergedRun while the next block repeats the payload and starts on the
frame the run ended. is_continuation_of_previous() answers the inverse
question so rules can act only at the first block of each run.

RULES:
- Everything works against the LineSource protocol (line_count +
  get_line), so a plain list or a live editor document both work
- Parsing failures return None; they never raise
- Without ignore_empty_lines a blank line ends a payload search and
  breaks a run; with it, blank lines are skipped
- The backward scan in is_continuation_of_previous() stops at the FIRST
  valid prior block; it never looks further for a better match
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from caption_qa.core.timecode import (
    is_timestamp_line,
    match_timestamp_line,
    parse_timecode_to_frames,
)


class LineSource(Protocol):
    """Anything that exposes a line count and random access to lines."""

    @property
    def line_count(self) -> int: ...

    def get_line(self, index: int) -> str: ...


class ListLineSource:
    """LineSource over an in-memory sequence of lines.

    Out-of-range indices return "" so scans never raise.
    """

    def __init__(self, lines: Sequence[str]) -> None:
        self._lines = lines

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def get_line(self, index: int) -> str:
        if 0 <= index < len(self._lines):
            return self._lines[index]
        return ""


@dataclass(frozen=True)
class ParsedBlock:
    """One timestamp line and the payload line it governs.

    Attributes:
        ts_line_index: Index of the timestamp line.
        payload_line_index: Index of the payload line below it.
        payload_text: The payload line, untrimmed.
        start_frame: Start of the block in frames.
        end_frame: End of the block in frames (>= start_frame).
    """

    ts_line_index: int
    payload_line_index: int
    payload_text: str
    start_frame: int
    end_frame: int

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame


@dataclass(frozen=True)
class MergedRun:
    """A maximal chain of frame-contiguous blocks sharing one payload."""

    start_ts_line_index: int
    end_ts_line_index: int
    start_frame: int
    end_frame: int
    payload_text: str
    payload_line_index_start: int
    payload_line_index_end: int

    @property
    def duration_frames(self) -> int:
        return self.end_frame - self.start_frame


def _find_next_timestamp_index(src: LineSource, from_index: int) -> Optional[int]:
    for j in range(from_index + 1, src.line_count):
        if is_timestamp_line(src.get_line(j)):
            return j
    return None


def _find_payload_below(
    src: LineSource, ts_index: int, ignore_empty_lines: bool
) -> Optional[int]:
    for i in range(ts_index + 1, src.line_count):
        line = src.get_line(i)
        if is_timestamp_line(line):
            return None
        if line.strip() == "":
            if ignore_empty_lines:
                continue
            return None
        return i
    return None


def has_empty_line_between(src: LineSource, start_index: int, end_index: int) -> bool:
    """True if any line strictly between the two indices is blank."""
    for i in range(start_index + 1, end_index):
        if src.get_line(i).strip() == "":
            return True
    return False


def parse_block_at(
    src: LineSource,
    ts_index: int,
    ignore_empty_lines: bool = False,
) -> Optional[ParsedBlock]:
    """Parse the timestamp block whose timestamp line is at ts_index.

    WHY: Every timed rule starts from a block: the timecodes plus the
    payload text a viewer actually sees.

    HOW: Matches the timecode pair, converts both ends to frames, then
    scans downward for the first non-empty, non-timestamp line.

    RULES:
    - Returns None if the line is not a timestamp line
    - Returns None if either timecode is invalid or end < start
    - Returns None if no payload line exists before the next timestamp
      line (or a blank line, unless ignore_empty_lines)

    Args:
        src: Line source to read from.
        ts_index: Index of the candidate timestamp line.
        ignore_empty_lines: Skip blank lines while looking for the payload.

    Returns:
        The ParsedBlock, or None.
    """
    if ts_index < 0 or ts_index >= src.line_count:
        return None
    m = match_timestamp_line(src.get_line(ts_index))
    if not m:
        return None

    start_frame = parse_timecode_to_frames(m.group("start"))
    end_frame = parse_timecode_to_frames(m.group("end"))
    if start_frame is None or end_frame is None or end_frame < start_frame:
        return None

    payload_index = _find_payload_below(src, ts_index, ignore_empty_lines)
    if payload_index is None:
        return None

    return ParsedBlock(
        ts_line_index=ts_index,
        payload_line_index=payload_index,
        payload_text=src.get_line(payload_index),
        start_frame=start_frame,
        end_frame=end_frame,
    )


def find_next_block(
    src: LineSource,
    from_index: int,
    ignore_empty_lines: bool = False,
) -> Optional[ParsedBlock]:
    """Return the first parseable block at or after from_index.

    Non-timestamp lines and timestamp lines that fail to parse are
    skipped; None only when the scan exhausts the document.
    """
    for i in range(max(0, from_index), src.line_count):
        block = parse_block_at(src, i, ignore_empty_lines)
        if block is not None:
            return block
    return None


def is_continuation_of_previous(
    src: LineSource,
    block: ParsedBlock,
    ignore_empty_lines: bool = False,
) -> bool:
    """True if block continues the run of the nearest prior valid block.

    WHY: Rules evaluate a run only at its first block; later rows of the
    same run must be suppressed.

    HOW: Scans upward from the timestamp line for the first line that
    parses as a block. That block alone decides the answer.

    RULES:
    - First valid prior block wins (no further search)
    - Continuation requires identical payload text AND
      prev.end_frame == block.start_frame
    - Without ignore_empty_lines, a blank line between the prior payload
      and this timestamp line means "not a continuation"
    """
    for i in range(block.ts_line_index - 1, -1, -1):
        prev = parse_block_at(src, i, ignore_empty_lines)
        if prev is None:
            continue
        if not ignore_empty_lines and has_empty_line_between(
            src, prev.payload_line_index, block.ts_line_index
        ):
            return False
        return (
            prev.payload_text == block.payload_text
            and prev.end_frame == block.start_frame
        )
    return False


def _iter_run_blocks(
    src: LineSource, first: ParsedBlock, ignore_empty_lines: bool
) -> List[ParsedBlock]:
    blocks = [first]
    scan_ts = first.ts_line_index
    last = first

    while True:
        next_ts = _find_next_timestamp_index(src, scan_ts)
        if next_ts is None:
            break
        if not ignore_empty_lines and has_empty_line_between(
            src, last.payload_line_index, next_ts
        ):
            break
        nxt = parse_block_at(src, next_ts, ignore_empty_lines)
        if (
            nxt is None
            or nxt.payload_text != first.payload_text
            or nxt.start_frame != last.end_frame
        ):
            break
        blocks.append(nxt)
        scan_ts = nxt.ts_line_index
        last = nxt

    return blocks


def merge_forward(
    src: LineSource,
    first: ParsedBlock,
    ignore_empty_lines: bool = False,
) -> MergedRun:
    """Extend first into the full run of identical, frame-contiguous blocks.

    WHY: A run is what the viewer perceives as a single cue, so its
    duration, not a single row's, is what reading speed depends on.

    HOW: Jumps to each following timestamp line and absorbs its block
    while the payload matches the first block's exactly and the block
    starts on the running end frame.

    RULES:
    - Stops at the first block that differs in text or timing
    - Stops at an unparseable timestamp line
    - Without ignore_empty_lines, stops at a blank line between blocks
    """
    blocks = _iter_run_blocks(src, first, ignore_empty_lines)
    last = blocks[-1]
    return MergedRun(
        start_ts_line_index=first.ts_line_index,
        end_ts_line_index=last.ts_line_index,
        start_frame=first.start_frame,
        end_frame=last.end_frame,
        payload_text=first.payload_text,
        payload_line_index_start=first.payload_line_index,
        payload_line_index_end=last.payload_line_index,
    )


def merged_run_payload_indices(
    src: LineSource,
    first: ParsedBlock,
    ignore_empty_lines: bool = False,
) -> List[int]:
    """Payload line indices of every block merge_forward() would absorb."""
    return [
        b.payload_line_index for b in _iter_run_blocks(src, first, ignore_empty_lines)
    ]
