"""Clip Refiner: transcript-edit reconciliation and clip planning engine.

WHY: A generative edit service returns a shortened transcript as freeform
text (or loosely structured words) with no timestamps. Cutting video from
that edit needs the edit mapped back onto the time-coded source transcript,
turned into source-timeline keep ranges, compressed onto one output timeline,
and captioned for that timeline. Multi-speaker clips also need each speaker
tied to a detected face.

HOW: Pipeline of pure functions: align (core.aligner), extend to sentence
start (core.sentence), build and split keep ranges (core.ranges), compress
the timeline (core.timeline), caption (caption_cues). The speakers package
holds snippet extraction and the speaker-face assignment state machine.

RULES:
- Every component is pure and synchronous; no module-level mutable state
- The IR dataclasses in core.ir are the contract between components
- Only the assignment state machine rejects calls; everything else is total
"""

__version__ = "0.1.0"
