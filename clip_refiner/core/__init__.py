"""Core alignment, range and timeline modules.

WHY: The core package holds the algorithmic heart of the engine: the IR
dataclasses and the functions that turn an edit into source-timeline keep
ranges and a compressed output timeline.

HOW: ir.py defines the data structures; normalize.py, aligner.py and
sentence.py reconstruct timestamps for an edit; ranges.py and timeline.py
build the cut list; transcript.py and refinement.py parse upstream
payloads; preload.py owns the cached-pass serialization contract.

RULES:
- IR dataclasses are the contract; change with care
- No I/O and no network access in this package
"""
