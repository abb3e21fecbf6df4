#!/usr/bin/env python3
"""Validate the keyword dictionary against its JSON Schema and custom rules."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional, Sequence

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from anitag.keyword_table import build_entries, validate_keyword_document  # noqa: E402

DICTIONARY_DIR = ROOT / "anitag" / "dictionaries"


def load_json(path: Path):
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def check_dictionary(dictionary_path: Path, schema_path: Path) -> List[str]:
    """
    Run every check over one dictionary file.

    Returns:
        Problem descriptions; empty when the file is valid
    """
    try:
        document = load_json(dictionary_path)
    except (OSError, json.JSONDecodeError) as exc:
        return [f"{dictionary_path.name}: cannot load: {exc}"]
    schema = load_json(schema_path)
    return validate_keyword_document(document, schema)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate the keyword dictionary")
    parser.add_argument("--dictionary", type=Path, default=DICTIONARY_DIR / "keywords.json")
    parser.add_argument("--schema", type=Path, default=DICTIONARY_DIR / "keywords.schema.json")
    args = parser.parse_args(argv)

    failures = check_dictionary(args.dictionary, args.schema)

    if failures:
        print("Dictionary validation failed:")
        for failure in failures:
            print(f" - {failure}")
        return 1

    entries = build_entries(load_json(args.dictionary))
    print(f"All dictionaries validated successfully ({len(entries)} keywords).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
