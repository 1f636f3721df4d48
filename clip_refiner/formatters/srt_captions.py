"""SRT caption formatter: default and compact presets via the cue library.

WHY: Editors often want the clip's captions as a sidecar file as well as
burned in. Two presets cover the usual targets: the default cues used for
the plan itself, and compact cues for narrow vertical layouts.

HOW: The default SRT renders the plan's own cues. The compact SRT re-runs
the cue segmenter on the plan's retimed words with the "compact" preset.

RULES:
- Always produces TWO files: {stem}-captions.srt and {stem}-compact.srt.
- Registered as "srt_captions" in the FORMATTERS dict.
- Media type for both outputs: "application/x-subrip".
- An empty plan yields two empty SRT strings.
"""

from typing import List

from caption_cues import format_srt, generate_srt
from clip_refiner.adapters.caption_adapter import words_to_caption_words
from clip_refiner.formatters.base import BaseFormatter, FormatterOutput
from clip_refiner.pipeline import ClipPlan


class SRTCaptionFormatter(BaseFormatter):
    """Formatter that produces default and compact SRT caption files."""

    @property
    def name(self) -> str:
        return "SRT Captions"

    def format(self, plan: ClipPlan) -> List[FormatterOutput]:
        default_srt = generate_srt(plan.captions) if plan.captions else ""
        compact_srt = format_srt(words_to_caption_words(plan.retimed_words), preset="compact")

        return [
            FormatterOutput(
                suffix="-captions.srt",
                content=default_srt,
                media_type="application/x-subrip",
            ),
            FormatterOutput(
                suffix="-compact.srt",
                content=compact_srt,
                media_type="application/x-subrip",
            ),
        ]
