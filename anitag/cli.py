#!/usr/bin/env python3
"""
Command line interface.

    anitag parse "[Group] Title - 01 [1080p].mkv" --json
    anitag report filenames.txt -o results.xlsx
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .batch import BatchParser
from .config import ConfigError, load_config, options_from_config
from .element import elements_to_dict
from .options import InvalidOptionsError
from .pipeline import FilenameParser
from .report import write_report_workbook

logger = logging.getLogger(__name__)

INPUT_ENCODINGS = ("utf-8", "utf-8-sig", "cp1252", "latin-1")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="anitag", description="Extract metadata from media release filenames")
    parser.add_argument("--config", help="JSON config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    options = parser.add_argument_group("parse options")
    options.add_argument("--allow-unknown-extension", action="store_true", default=None,
                         help="Treat any short trailing .suffix as the file extension")
    options.add_argument("--extended-extensions", action="store_true", default=None,
                         help="Also recognize subtitle and archive extensions")
    options.add_argument("--no-episode-title", action="store_true",
                         help="Do not extract episode titles")
    options.add_argument("--no-release-group", action="store_true",
                         help="Do not extract release groups")
    options.add_argument("--year-range", nargs=2, type=int, metavar=("MIN", "MAX"),
                         help="Inclusive release year bounds")

    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse filenames given on the command line")
    parse_cmd.add_argument("filenames", nargs="+", help="Filenames to parse")
    parse_cmd.add_argument("--json", action="store_true", help="Print results as JSON")

    report_cmd = subparsers.add_parser("report", help="Parse a list of filenames into an Excel workbook")
    report_cmd.add_argument("input_file", help="Text file with one filename per line")
    report_cmd.add_argument("-o", "--output", help="Output .xlsx file (default: INPUT-results.xlsx)")
    report_cmd.add_argument("--parallel", action="store_true", default=None, help="Parse on a thread pool")

    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate command line flags into config overrides."""
    options: Dict[str, Any] = {}
    if args.allow_unknown_extension:
        options["allow_unknown_extension"] = True
    if args.extended_extensions:
        options["extended_extensions"] = True
    if args.no_episode_title:
        options["parse_episode_title"] = False
    if args.no_release_group:
        options["parse_release_group"] = False
    if args.year_range:
        options["year_min"], options["year_max"] = args.year_range

    overrides: Dict[str, Any] = {}
    if options:
        overrides["options"] = options
    if getattr(args, "parallel", None):
        overrides["batch"] = {"parallel": True}
    return overrides


def read_filenames(path: Path) -> List[str]:
    """Read one filename per line, skipping blank lines."""
    for encoding in INPUT_ENCODINGS:
        try:
            text = path.read_text(encoding=encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        text = path.read_text(encoding="utf-8", errors="replace")
    return [line.strip() for line in text.splitlines() if line.strip()]


def _format_plain(filename: str, flat: Dict[str, Any]) -> str:
    lines = [filename]
    for kind, value in flat.items():
        shown = " | ".join(value) if isinstance(value, list) else value
        lines.append(f"  {kind}: {shown}")
    return "\n".join(lines)


def run_parse(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    parser = FilenameParser(options_from_config(config))
    results = [(name, elements_to_dict(parser.parse(name))) for name in args.filenames]
    if args.json:
        payload = [{"filename": name, "elements": flat} for name, flat in results]
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print("\n".join(_format_plain(name, flat) for name, flat in results))
    return 0


def run_report(args: argparse.Namespace, config: Dict[str, Any]) -> int:
    input_path = Path(args.input_file)
    output_path = Path(args.output) if args.output else input_path.with_name(input_path.stem + "-results.xlsx")
    if output_path.suffix != ".xlsx":
        output_path = output_path.with_suffix(".xlsx")

    try:
        filenames = read_filenames(input_path)
    except OSError as exc:
        logger.error("Cannot read %s: %s", input_path, exc)
        return 1

    batch_config = config["batch"]
    batch_parser = BatchParser(
        options_from_config(config),
        batch_size=batch_config["batch_size"],
        max_workers=batch_config["max_workers"],
    )
    if batch_config["parallel"]:
        result = batch_parser.parse_many_parallel(filenames)
    else:
        result = batch_parser.parse_many(filenames)

    write_report_workbook(output_path, result.results, config["report"]["sheet_name"])
    logger.info("Wrote %s rows to %s", result.parsed_files, output_path)
    print(f"Wrote {result.parsed_files} rows to {output_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Entry point for the ``anitag`` console script."""
    arg_parser = build_arg_parser()
    args = arg_parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config, overrides_from_args(args))
        if args.command == "parse":
            return run_parse(args, config)
        return run_report(args, config)
    except (ConfigError, InvalidOptionsError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
