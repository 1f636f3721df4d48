"""Command-line interface for the clip refiner.

WHY: Editors and scripts need a way to turn a transcript plus an AI edit
into a cut list and captions without running the HTTP server. The CLI wires
together the whole pipeline (transcript extraction, edit alignment, range
building, timeline compression, captioning and pluggable formatter output)
behind a single command.

HOW: argparse accepts a speech-to-text JSON file and an edit (a freeform
text file or an edit service JSON payload). The transcript is extracted,
the clip is planned, the selected formatters run and their outputs are
saved as {stem}{suffix} next to the transcript (or in --output-dir).
--snippets skips the edit and prints one speaker snippet per speaker as
JSON on stdout; --prompt-text prints the paragraphed transcript that is
sent to the edit service. A transcript with only a top-level "text" and no
word timings is spread evenly over --duration.

RULES:
- Positional argument: transcript JSON path
- Exactly one of --edit-text / --refinement, unless --snippets or
  --prompt-text is given
- --formats: comma-separated formatter keys (default: all registered)
- Output naming: {stem}{suffix}, numeric suffix for conflicts (-cut-list-2.json)
- Status output goes to stderr (not stdout)
- Exit codes: 0 = success, 1 = error or no clips generated
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from caption_cues import PRESETS as CAPTION_PRESETS
from clip_refiner.config import DEFAULT_CAPTION_PRESET, LOG_LEVEL, MIN_CLIP_DURATION_SECONDS
from clip_refiner.core.transcript import (
    PROVIDERS,
    build_transcript_text,
    build_transcript_words_from_text,
    extract_transcript_words,
)
from clip_refiner.formatters import FORMATTERS
from clip_refiner.formatters.base import FormatterOutput
from clip_refiner.pipeline import refine_clip
from clip_refiner.speakers.snippets import build_speaker_snippets


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        _fail("{} is not valid JSON: {}".format(path, e))


def _resolve_output_path(stem: str, suffix: str, output_dir: Path) -> Path:
    """Return {stem}{suffix} in output_dir, adding -2, -3... on conflict."""
    base_path = output_dir / "{}{}".format(stem, suffix)
    if not base_path.exists():
        return base_path

    dot_idx = suffix.rfind(".")
    if dot_idx > 0:
        suffix_name = suffix[:dot_idx]
        suffix_ext = suffix[dot_idx:]
    else:
        suffix_name = suffix
        suffix_ext = ""

    counter = 2
    while True:
        candidate = output_dir / "{}{}-{}{}".format(stem, suffix_name, counter, suffix_ext)
        if not candidate.exists():
            return candidate
        counter += 1


def _save_output(output: FormatterOutput, stem: str, output_dir: Path) -> Path:
    path = _resolve_output_path(stem, output.suffix, output_dir)
    path.write_text(output.content, encoding="utf-8")
    return path


def _parse_formats(value: Optional[str]) -> List[str]:
    if not value:
        return list(FORMATTERS.keys())
    keys = [f.strip() for f in value.split(",") if f.strip()]
    for key in keys:
        if key not in FORMATTERS:
            _fail("Unknown format '{}'. Available formats: {}".format(
                key, ", ".join(sorted(FORMATTERS.keys()))
            ))
    return keys


def run(args: argparse.Namespace) -> int:
    """Execute the CLI pipeline for parsed arguments; returns the exit code."""
    transcript_path = Path(args.transcript).resolve()
    if not transcript_path.is_file():
        _fail("File not found: {}".format(transcript_path))

    payload = _read_json(transcript_path)
    words = extract_transcript_words(payload, provider=args.provider)
    if not words and isinstance(payload, dict):
        # no word timestamps: spread the plain text over the media duration
        words = build_transcript_words_from_text(payload.get("text"), args.duration)
        if words:
            _status("No word timings in {}; spreading text evenly".format(transcript_path.name))
    if not words:
        _fail("No words found in {}".format(transcript_path))
    _status("Loaded {} words from {}".format(len(words), transcript_path.name))

    total_duration = args.duration if args.duration is not None else words[-1].end

    if args.prompt_text:
        print(build_transcript_text(words))
        return 0

    if args.snippets:
        snippets = build_speaker_snippets(words, total_duration)
        print(json.dumps([s.to_dict() for s in snippets], indent=2, ensure_ascii=False))
        return 0

    if args.edit_text:
        edit: Any = Path(args.edit_text).read_text(encoding="utf-8")
    elif args.refinement:
        edit = _read_json(Path(args.refinement))
        if not isinstance(edit, dict):
            _fail("Refinement payload must be a JSON object")
    else:
        _fail("One of --edit-text or --refinement is required")

    output_dir = Path(args.output_dir).resolve() if args.output_dir else transcript_path.parent
    if not output_dir.is_dir():
        _fail("Output directory does not exist: {}".format(output_dir))
    format_keys = _parse_formats(args.formats)

    _status("Planning clip...")
    plan = refine_clip(
        words,
        edit,
        total_duration,
        min_range_duration=args.min_clip_duration,
        caption_preset=args.caption_preset,
    )
    if plan.is_empty:
        _fail("No clips generated: the edit did not match the transcript")
    _status("  {} range(s), {:.1f}s of {:.1f}s kept, {} caption(s)".format(
        len(plan.keep_ranges), plan.output_duration, total_duration, len(plan.captions)
    ))

    stem = transcript_path.stem
    saved_files: List[Path] = []
    for key in format_keys:
        formatter = FORMATTERS[key]()
        _status("  Running {} formatter...".format(formatter.name))
        for output in formatter.format(plan):
            saved_path = _save_output(output, stem, output_dir)
            saved_files.append(saved_path)
            _status("  Saved: {}".format(saved_path.name))

    _status("Done! Saved {} file(s) to {}".format(len(saved_files), output_dir))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="clip_refiner",
        description="Reconcile an AI transcript edit with the time-coded transcript "
                    "and write a cut list, captions and the kept text.",
    )
    parser.add_argument(
        "transcript",
        help="Path to the speech-to-text JSON response.",
    )
    parser.add_argument(
        "--provider",
        default="elevenlabs",
        choices=sorted(PROVIDERS.keys()),
        help="Shape of the transcript JSON (default: %(default)s).",
    )

    edit = parser.add_mutually_exclusive_group()
    edit.add_argument(
        "--edit-text",
        default=None,
        help="Path to a text file with the edited (trimmed) transcript.",
    )
    edit.add_argument(
        "--refinement",
        default=None,
        help="Path to an edit service JSON payload (trimmed_text, keep_ranges, concepts...).",
    )

    parser.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Source media duration in seconds (default: end of the last word).",
    )
    parser.add_argument(
        "--formats",
        default=None,
        help="Comma-separated list of output formats. "
             "Available: {}. Default: all.".format(", ".join(sorted(FORMATTERS.keys()))),
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to save output files (default: same as the transcript).",
    )
    parser.add_argument(
        "--caption-preset",
        default=DEFAULT_CAPTION_PRESET,
        choices=sorted(CAPTION_PRESETS.keys()),
        help="Caption cue limits (default: %(default)s).",
    )
    parser.add_argument(
        "--min-clip-duration",
        type=float,
        default=MIN_CLIP_DURATION_SECONDS,
        help="Drop keep ranges shorter than this many seconds (default: %(default)s).",
    )
    parser.add_argument(
        "--snippets",
        action="store_true",
        help="Print one speaker snippet per speaker as JSON and exit.",
    )
    parser.add_argument(
        "--prompt-text",
        action="store_true",
        help="Print the transcript as paragraphed text for the edit prompt and exit.",
    )
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        help="Logging level (default: %(default)s).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m clip_refiner`` and the clip-refiner script.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Explicit argv is for testing
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    sys.exit(run(args))


if __name__ == "__main__":
    main()
