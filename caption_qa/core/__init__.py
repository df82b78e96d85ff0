"""Core parsing, segmentation and rule-execution modules.

WHY: The core package is the stable heart of the analyzer: the timing
model, the two dialect segmenters and the engine every rule runs under.
Rules, findings and output build on these without reaching into raw
text themselves.

HOW: timecode.py does frame arithmetic, blocks.py parses timestamp
blocks and runs, segments.py turns whole documents into Segments,
metrics.py defines the records rules emit, engine.py drives rules over
contexts, and termlists.py loads the optional word lists from disk.

RULES:
- Nothing here imports caption_qa.config (config depends on core)
- Only termlists.py touches the filesystem
- Malformed input yields None or empty results, never an exception
"""
