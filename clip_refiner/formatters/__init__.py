"""Output formatter registry: pluggable format hub.

WHY: The CLI and API layers need a single lookup to find the right
formatter by name. A central dict makes it trivial to add new formats:
create the formatter class, import it here, add one line.

HOW: FORMATTERS maps string keys to formatter *classes* (not instances).
Callers instantiate as needed: ``formatter = FORMATTERS["cut_list"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags and API requests)
- Values are BaseFormatter subclasses (not instances)
- Every formatter listed here must be importable without side effects
"""

from __future__ import annotations

from typing import Dict, Type

from clip_refiner.formatters.base import BaseFormatter
from clip_refiner.formatters.cut_list import CutListFormatter
from clip_refiner.formatters.plain_text import PlainTextFormatter
from clip_refiner.formatters.srt_captions import SRTCaptionFormatter

FORMATTERS: Dict[str, Type[BaseFormatter]] = {
    "cut_list": CutListFormatter,
    "srt_captions": SRTCaptionFormatter,
    "plain_text": PlainTextFormatter,
}
