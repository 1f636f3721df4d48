"""CLI wrapper for the caption cue library.

WHY: Captions are often re-derived for an existing word list outside the
clip pipeline (checking a preset, re-rendering after a manual edit). This
module exposes the library on the command line and supports
`python -m caption_cues.cli`.

HOW: argparse reads the input path, optional output path, --preset and
--json flags, then delegates to segment_captions() / generate_srt(). Input
parsing (JSON with fallback for incomplete files) is handled by
core.try_parse_json() and core.parse_input().

RULES:
- Usage:
    python -m caption_cues.cli words.json captions.srt [--preset compact]
    python -m caption_cues.cli words.json --json  (cue JSON to stdout)
    cat words.json | python -m caption_cues.cli - captions.srt
- Exit codes: 0 = success, 1 = error.
- Progress messages go to stderr; output goes to stdout if no output file.
"""

import argparse
import json
import sys
from typing import List, Optional

from . import segment_captions
from .core import generate_srt, parse_input, try_parse_json
from .presets import PRESETS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="caption-cues",
        description="Segment a timestamped word list into caption cues.",
    )
    parser.add_argument("input", nargs="?", default="-", help="Word list JSON ('-' for stdin)")
    parser.add_argument("output", nargs="?", default=None, help="Output file (default: stdout)")
    parser.add_argument(
        "--preset",
        default="default",
        choices=sorted(PRESETS.keys()),
        help="Cue limit preset (default: default)",
    )
    parser.add_argument("--json", action="store_true", help="Write cue JSON instead of SRT")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Run the caption cue CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).
    """
    args = build_parser().parse_args(argv)

    if args.input == "-":
        raw = sys.stdin.read()
    else:
        with open(args.input, "r", encoding="utf-8") as f:
            raw = f.read()

    try:
        data = try_parse_json(raw)
    except ValueError as e:
        print("Error: {}".format(e), file=sys.stderr)
        sys.exit(1)

    words = parse_input(data)
    if not words:
        print("Error: No words found in input", file=sys.stderr)
        sys.exit(1)

    cues = segment_captions(words, args.preset)
    if args.json:
        content = json.dumps([c.to_dict() for c in cues], indent=2, ensure_ascii=False)
    else:
        content = generate_srt(cues)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(content)
        print(
            "Wrote {} captions ({} preset) to {}".format(len(cues), args.preset, args.output),
            file=sys.stderr,
        )
    else:
        print(content)


if __name__ == "__main__":
    main()
