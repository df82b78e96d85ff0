"""Loading the optional term lists that tune the style rules.

WHY: House style varies per production: which spellings are enforced
(capitalization terms), which capitalized words may start a cue
mid-sentence (proper nouns), and which abbreviations end in a period
without ending a sentence. Editors keep these in small text files next
to their scripts instead of passing them on every run.

HOW: load_terms() reads one file. find_up() walks from a start
directory towards the filesystem root looking for a file name.
load_term_list() tries each root in turn and loads the first match.
load_default_term_lists() bundles the three well-known files into a
TermLists value the CLI copies into AnalysisConfig.

RULES:
- Terms files: one term per line, strip whitespace, ignore blank lines
  and lines starting with '#'
- A missing file yields an empty tuple, never an error
- I/O errors on a file that exists propagate to the caller
- This is the only core module that touches the filesystem
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

CAPITALIZATION_TERMS_FILE = "capitalization-terms.txt"
PROPER_NOUNS_FILE = "punctuation-proper-nouns.txt"
ABBREVIATIONS_FILE = "punctuation-abbreviations.txt"


@dataclass(frozen=True)
class TermLists:
    """The three optional term lists, empty when no file was found.

    RULES:
    - capitalization_terms: exact spellings enforced by CAPITALIZATION
    - proper_nouns: capitalized words allowed after an unpunctuated cue
    - abbreviations: period-final words that do not end a sentence
    """

    capitalization_terms: Tuple[str, ...] = ()
    proper_nouns: Tuple[str, ...] = ()
    abbreviations: Tuple[str, ...] = ()


def load_terms(path: Union[str, Path]) -> List[str]:
    """Load terms from a text file, one per line.

    WHY: Term lists are hand-edited, so they carry comments and blank
    spacer lines that must not become terms.

    HOW: Read the file, strip each line, skip blanks and '#' comments.

    RULES:
    - One term per line, in file order
    - File must be UTF-8 encoded

    Args:
        path: Path to the terms file.

    Returns:
        List of term strings.
    """
    lines = Path(path).read_text(encoding="utf-8").splitlines()
    terms: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        terms.append(stripped)
    return terms


def find_up(filename: str, start_dir: Union[str, Path]) -> Optional[Path]:
    """Return the first ``filename`` found in start_dir or any parent."""
    directory = Path(start_dir).resolve()
    while True:
        candidate = directory / filename
        if candidate.is_file():
            return candidate
        if directory.parent == directory:
            return None
        directory = directory.parent


def load_term_list(filename: str, roots: Iterable[Union[str, Path]]) -> Tuple[str, ...]:
    """Load the first ``filename`` found walking up from any of roots.

    Roots are tried in order; the first root with a match wins even if
    a later root would find a different file.
    """
    for root in roots:
        found = find_up(filename, root)
        if found is None:
            continue
        terms = load_terms(found)
        logger.info("Loaded %d terms from %s", len(terms), found)
        return tuple(terms)
    return ()


def load_default_term_lists(start_dir: Optional[Union[str, Path]] = None) -> TermLists:
    """Discover and load all well-known term lists.

    Args:
        start_dir: Directory to start searching from (default: CWD).

    Returns:
        TermLists with every list found (empty tuples otherwise).
    """
    roots = [Path(start_dir) if start_dir is not None else Path.cwd()]
    return TermLists(
        capitalization_terms=load_term_list(CAPITALIZATION_TERMS_FILE, roots),
        proper_nouns=load_term_list(PROPER_NOUNS_FILE, roots),
        abbreviations=load_term_list(ABBREVIATIONS_FILE, roots),
    )
