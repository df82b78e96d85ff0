"""Segmenters for the timed-caption and news-script dialects.

WHY: Rules should not care which dialect they are reading. Both dialects
are reduced to an ordered list of Segments, one per timed cue, or one
per VO/SUPER source↔target pairing, so a rule only ever looks at a
segment's text, its target lines and (when timed) its frames.

HOW: parse_subs() walks every line through parse_block_at() and keeps
each block as a timed Segment. parse_news() is a single forward scan
over a small explicit state (_NewsState) that buffers CJK source lines
and English target lines and flushes them as script Segments whenever
a structural line, a new source/target pairing or a block-type change
is reached.

RULES:
- Segments are frozen and built fresh on every call, in document order
- A target line is "English-like": 3+ ASCII letters, no CJK, and not
  starting with "(" or "[" (bracketed annotations are not captions)
- News structural lines (blank, LABEL:, NNN_NNNN, <<<, >>>) are never
  content; they flush the pending pair and end SUPER mode
- A script segment's anchor is its first target line, else its first
  source line
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from caption_qa.core.blocks import ListLineSource, parse_block_at

BLOCK_VO = "vo"
BLOCK_SUPER = "super"

CJK_RE = re.compile(r"[\u3400-\u4DBF\u4E00-\u9FFF\uF900-\uFAFF]")
ASCII_LETTER_RE = re.compile(r"[A-Za-z]")
NEWS_LABEL_RE = re.compile(r"^[A-Z]{2,5}:$")
SCENE_MARKER_RE = re.compile(r"^\d{3}_\d{4}\b")


@dataclass(frozen=True)
class CandidateLine:
    """One source or target line of a segment, with its line index."""

    line_index: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"line_index": self.line_index, "text": self.text}


@dataclass(frozen=True)
class Segment:
    """The unit a rule evaluates.

    WHY: Timed cues and news script blocks need one shape so every rule
    can run over both dialects.

    HOW: Timed segments (block_type None) carry the block's timestamp
    line, payload line and frames. Script segments (block_type "vo" or
    "super") carry their source and target lines instead.

    RULES:
    - line_index is the display anchor for any metric on this segment
    - text is the payload (timed) or the target lines joined by spaces
    - source_text is the source lines joined by spaces ("" when none)
    - A script segment with sources and no targets is a missing
      translation
    """

    line_index: int
    text: str
    line_index_end: Optional[int] = None
    block_type: Optional[str] = None
    ts_line_index: Optional[int] = None
    payload_line_index: Optional[int] = None
    start_frame: Optional[int] = None
    end_frame: Optional[int] = None
    target_lines: Tuple[CandidateLine, ...] = ()
    source_lines: Tuple[CandidateLine, ...] = ()
    source_text: str = ""

    @property
    def is_timed(self) -> bool:
        return (
            self.ts_line_index is not None
            and self.start_frame is not None
            and self.end_frame is not None
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "line_index": self.line_index,
            "line_index_end": self.line_index_end,
            "text": self.text,
        }
        if self.block_type is not None:
            out["block_type"] = self.block_type
            out["source_text"] = self.source_text
            out["source_lines"] = [c.to_dict() for c in self.source_lines]
        if self.is_timed:
            out["ts_line_index"] = self.ts_line_index
            out["payload_line_index"] = self.payload_line_index
            out["start_frame"] = self.start_frame
            out["end_frame"] = self.end_frame
        out["target_lines"] = [c.to_dict() for c in self.target_lines]
        return out


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> List[str]:
    """Normalize \\r\\n and \\r to \\n, then split into lines."""
    return normalize_line_endings(text).split("\n")


def contains_cjk(text: str) -> bool:
    return CJK_RE.search(text) is not None


def is_english_like(text: str) -> bool:
    """True if the line reads as an English caption line."""
    trimmed = text.strip()
    if not trimmed:
        return False
    if trimmed.startswith(("(", "[", "/*")):
        return False
    if contains_cjk(text):
        return False
    return len(ASCII_LETTER_RE.findall(text)) >= 3


def is_structural_line(text: str) -> bool:
    """True for news-script lines that carry layout, not content."""
    trimmed = text.strip()
    if not trimmed:
        return True
    if NEWS_LABEL_RE.match(trimmed):
        return True
    if SCENE_MARKER_RE.match(trimmed):
        return True
    return trimmed.startswith("<<<") or trimmed.startswith(">>>")


def parse_subs(text: str, ignore_empty_lines: bool = False) -> List[Segment]:
    """Split a timed-caption document into one Segment per parseable block.

    WHY: In the caption dialect the cue is the unit of analysis; lines
    that do not belong to a block (notes, stray text) are not captions.

    HOW: Tries parse_block_at() on every line. Each success becomes a
    timed Segment anchored to the block's payload line.

    RULES:
    - Every parseable block yields a segment, including each raw row of
      a merged run (run-aware rules dedup themselves)
    - target_lines holds the payload only when it is English-like

    Args:
        text: Full document text.
        ignore_empty_lines: Skip blank lines while looking for payloads.

    Returns:
        Timed segments in document order.
    """
    lines = split_lines(text)
    src = ListLineSource(lines)
    segments: List[Segment] = []

    for i in range(len(lines)):
        block = parse_block_at(src, i, ignore_empty_lines)
        if block is None:
            continue
        targets: Tuple[CandidateLine, ...] = ()
        if is_english_like(block.payload_text):
            targets = (CandidateLine(block.payload_line_index, block.payload_text),)
        segments.append(
            Segment(
                line_index=block.payload_line_index,
                line_index_end=block.payload_line_index,
                text=block.payload_text,
                ts_line_index=block.ts_line_index,
                payload_line_index=block.payload_line_index,
                start_frame=block.start_frame,
                end_frame=block.end_frame,
                target_lines=targets,
            )
        )

    return segments


@dataclass
class _NewsState:
    """Mutable scan state for parse_news()."""

    in_comment: bool = False
    in_super_comment: bool = False
    super_active: bool = False
    pending_type: Optional[str] = None
    sources: List[CandidateLine] = field(default_factory=list)
    targets: List[CandidateLine] = field(default_factory=list)
    segments: List[Segment] = field(default_factory=list)

    def flush(self) -> None:
        if self.sources or self.targets:
            anchor = self.targets[0] if self.targets else self.sources[0]
            last = max(c.line_index for c in self.sources + self.targets)
            self.segments.append(
                Segment(
                    line_index=anchor.line_index,
                    line_index_end=last,
                    text=" ".join(c.text.strip() for c in self.targets),
                    block_type=self.pending_type or BLOCK_VO,
                    target_lines=tuple(self.targets),
                    source_lines=tuple(self.sources),
                    source_text=" ".join(c.text.strip() for c in self.sources),
                )
            )
        self.sources = []
        self.targets = []
        self.pending_type = None

    def current_type(self) -> str:
        return BLOCK_SUPER if self.super_active else BLOCK_VO

    def add_source(self, line: CandidateLine, block_type: str) -> None:
        # A new source after targets starts a new source/target pair.
        if self.targets or (self.pending_type and self.pending_type != block_type):
            self.flush()
        self.pending_type = block_type
        self.sources.append(line)

    def add_target(self, line: CandidateLine, block_type: str) -> None:
        if self.pending_type and self.pending_type != block_type:
            self.flush()
        self.pending_type = block_type
        self.targets.append(line)

    def close_comment(self) -> None:
        self.in_comment = False
        if self.in_super_comment:
            self.super_active = True
        self.in_super_comment = False


def _comment_body(trimmed: str) -> str:
    body = trimmed
    if body.startswith("/*"):
        body = body[2:]
        if body.upper().startswith("SUPER"):
            body = body[5:]
    end = body.find("*/")
    if end >= 0:
        body = body[:end]
    return body.strip()


def parse_news(text: str) -> List[Segment]:
    """Split a bilingual news script into VO/SUPER script segments.

    WHY: A news script interleaves Chinese source lines with their
    English translation, wrapped in labels, scene markers and SUPER
    comments. Rules need each source paired with its translation, typed
    as VO (narration) or SUPER (on-screen text).

    HOW: One forward scan. ``/*SUPER ... */`` comments buffer any CJK
    lines inside them as SUPER sources and switch SUPER mode on when
    they close; other comments are skipped. CJK lines outside comments
    are sources, English-like lines are targets, and both take the
    current block type.

    RULES:
    - Structural lines flush and switch SUPER mode off
    - A source line arriving after targets flushes (new pair)
    - A block-type change flushes
    - Lines that are neither source nor target (annotations, fragments)
      are skipped without flushing
    - Unterminated comments swallow the rest of the document

    Args:
        text: Full news script text.

    Returns:
        Script segments in document order.
    """
    state = _NewsState()

    for i, raw in enumerate(split_lines(text)):
        trimmed = raw.strip()

        if state.in_comment:
            body = _comment_body(trimmed) if "*/" in trimmed else trimmed
            if state.in_super_comment and contains_cjk(body):
                state.add_source(CandidateLine(i, body), BLOCK_SUPER)
            if "*/" in trimmed:
                state.close_comment()
            continue

        if trimmed.startswith("/*"):
            state.flush()
            state.in_comment = True
            state.in_super_comment = trimmed[2:].upper().startswith("SUPER")
            body = _comment_body(trimmed)
            if state.in_super_comment and contains_cjk(body):
                state.add_source(CandidateLine(i, body), BLOCK_SUPER)
            if "*/" in trimmed[2:]:
                state.close_comment()
            continue

        if is_structural_line(raw):
            state.flush()
            state.super_active = False
            continue

        if contains_cjk(raw):
            state.add_source(CandidateLine(i, raw), state.current_type())
        elif is_english_like(raw):
            state.add_target(CandidateLine(i, raw), state.current_type())

    state.flush()
    return state.segments
