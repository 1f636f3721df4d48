"""Abstract base formatter and output container.

WHY: Every output format consumes the same ClipPlan but produces different
file content. This base class enforces a consistent interface so the CLI
and API layers can work with any formatter generically.

HOW: BaseFormatter is an ABC with two requirements: a ``name`` property
and a ``format()`` method. FormatterOutput is a plain dataclass that
bundles a file suffix with its content and MIME type.

RULES:
- Subclasses MUST implement ``name`` (human-readable) and ``format()``
- ``format()`` returns a list; most formatters return one item, but
  multi-file formatters (e.g. SRT with two presets) return several
- ``suffix`` starts with a hyphen, e.g. ``"-cut-list.json"``
- The caller is responsible for prepending the source filename stem
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from clip_refiner.pipeline import ClipPlan


@dataclass
class FormatterOutput:
    """One output file produced by a formatter.

    Attributes:
        suffix: File suffix appended to the source stem,
                e.g. ``"-cut-list.json"`` → ``"interview-cut-list.json"``.
        content: The file content as a string (JSON, SRT, plain text).
        media_type: MIME type for the content, e.g. ``"application/json"``.
    """

    suffix: str
    content: str
    media_type: str


class BaseFormatter(ABC):
    """Abstract base for all output formatters.

    To add a new output format:
    1. Create a new file in formatters/
    2. Subclass BaseFormatter
    3. Implement format() and name
    4. Register in FORMATTERS dict in formatters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable format name, e.g. 'Cut List JSON'."""

    @abstractmethod
    def format(self, plan: ClipPlan) -> List[FormatterOutput]:
        """Convert a ClipPlan into one or more output files."""
