# =============================================================================
# main.py
# Entry point for Image Pair Comparator.
#
# Usage:
#   python main.py                         # launch the desktop GUI
#   python main.py IMAGE1 IMAGE2 [options] # compare from the command line
#
# Dependencies:
#   pip install -e .
# =============================================================================

import sys
import json
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from colorama import init, Fore, Style

from analysis import DecodeError, analyze_paths
from models import AnalysisResult, result_to_dict
from summary import format_text_report
from report import write_result_csv, generate_pdf_report

logger = logging.getLogger(__name__)

EXIT_OK           = 0
EXIT_MISSING_FILE = 1
EXIT_DECODE_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compare two images locally: metrics, subject class, "
                    "histogram similarity and a written summary.")
    parser.add_argument("image1", help="Path to the first image")
    parser.add_argument("image2", help="Path to the second image")
    parser.add_argument("--json", action="store_true",
                        help="Print the result as JSON instead of a text report")
    parser.add_argument("--pdf", metavar="OUT", help="Also write a PDF report")
    parser.add_argument("--csv", metavar="OUT", help="Also write per-image metrics as CSV")
    parser.add_argument("--save-previews", metavar="DIR",
                        help="Write grayscale and edge-map PNG previews to DIR")
    parser.add_argument("--sequential", action="store_true",
                        help="Analyze the two images one after the other")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show per-stage debug logging")
    return parser


def _score_color(score: int) -> str:
    if score > 75:
        return Fore.GREEN
    if score > 40:
        return Fore.YELLOW
    return Fore.RED


def print_report(result: AnalysisResult, names: List[str]):
    text = format_text_report(result, names)
    for line in text.splitlines():
        if line.startswith("Similarity score"):
            print(f"{_score_color(result.similarity_score)}{Style.BRIGHT}{line}{Style.RESET_ALL}")
        elif line.startswith("[ANALYZABILITY WARNING]") or "Low contrast" in line:
            print(f"{Fore.YELLOW}{line}{Style.RESET_ALL}")
        elif line.endswith(":") and not line.startswith(" "):
            print(f"{Style.BRIGHT}{line}{Style.RESET_ALL}")
        else:
            print(line)


def save_previews(result: AnalysisResult, out_dir: str, names: List[str]) -> List[Path]:
    root = Path(out_dir).expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    written = []
    for name, img in zip(names, (result.image1, result.image2)):
        stem = Path(name).stem
        for kind, png in (("gray", img.grayscale_png), ("edges", img.edges_png)):
            out = root / f"{stem}_{kind}.png"
            out.write_bytes(png)
            written.append(out)
    return written


def run_cli(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    names = [Path(args.image1).name, Path(args.image2).name]
    if names[0] == names[1]:
        names = [f"1-{names[0]}", f"2-{names[1]}"]

    try:
        result = analyze_paths(args.image1, args.image2, parallel=not args.sequential)
    except FileNotFoundError as e:
        print(f"{Fore.RED}err{Style.RESET_ALL}  File not found: {e.filename}", file=sys.stderr)
        return EXIT_MISSING_FILE
    except DecodeError as e:
        print(f"{Fore.RED}err{Style.RESET_ALL}  {e}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    if args.json:
        print(json.dumps(result_to_dict(result), indent=2))
    else:
        print_report(result, names)

    if args.csv:
        out = write_result_csv(result, args.csv, names)
        logger.info("CSV written to %s", out)
    if args.pdf:
        out = generate_pdf_report(args.pdf, result, names)
        logger.info("PDF written to %s", out)
    if args.save_previews:
        for out in save_previews(result, args.save_previews, names):
            logger.info("Preview written to %s", out)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    init()
    if not argv:
        from gui import ComparatorGUI
        ComparatorGUI().run()
        return EXIT_OK
    return run_cli(argv)


if __name__ == "__main__":
    sys.exit(main())
