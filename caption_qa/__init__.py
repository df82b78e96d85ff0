"""Caption QA — quality checks for timed caption and news scripts.

WHY: Caption editors need fast, deterministic feedback on legibility
(reading speed), house style (numbers, percents, capitalization,
punctuation, quotes), missing translations and accidental edits against
a trusted baseline. The checks must be identical whether they run from
the command line or on every keystroke in an editor.

HOW: Four-stage pipeline: segment (core.segments), run rules
(core.engine + rules), classify metrics into findings (findings), and
assemble output (output). Each stage is a pure function of the input
text and an immutable AnalysisConfig.

RULES:
- Only core.termlists and cli touch the filesystem; everything else
  works on strings already in memory
- Malformed input never raises; it produces fewer or degenerate results
- Adding a rule = one module in rules/ plus one entry in rules.RULES
"""

__version__ = "0.1.0"
