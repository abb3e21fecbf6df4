#!/usr/bin/env python3
"""
Evaluation of parser output against a labelled corpus.

Two modes:
- blind: coverage metrics for unlabelled filenames
- reference: per-field accuracy against expected elements

A corpus is a JSON array of records::

    {"input": "...", "output": {"anime_title": "...", ...}, "options": {...}}

``output`` uses ElementKind values as keys; a kind that occurs more than once
maps to a list. ``options`` is optional and holds Options field overrides.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .element import ElementKind, elements_to_dict
from .options import Options
from .pipeline import FilenameParser

logger = logging.getLogger(__name__)

EVALUATED_KINDS = [kind.value for kind in ElementKind if kind is not ElementKind.UNKNOWN]

FieldValue = Union[str, List[str], None]


@dataclass
class CorpusRecord:
    input: str
    expected: Dict[str, FieldValue]
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EvaluatedRow:
    input: str
    parsed: Dict[str, FieldValue]
    expected: Optional[Dict[str, FieldValue]] = None

    @property
    def perfect(self) -> bool:
        return self.expected is not None and self.parsed == self.expected


def load_corpus(path: Union[str, Path]) -> List[CorpusRecord]:
    """
    Read a JSON corpus file.

    Args:
        path: Corpus file

    Returns:
        Corpus records in file order

    Raises:
        ValueError: If the file is not an array of records with ``input`` and ``output``
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"corpus {path} must be a JSON array")

    records = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict) or "input" not in item or "output" not in item:
            raise ValueError(f"corpus {path} record {idx} needs 'input' and 'output'")
        records.append(CorpusRecord(input=item["input"], expected=dict(item["output"]), options=dict(item.get("options") or {})))
    return records


def evaluate_records(records: Sequence[CorpusRecord], base_options: Optional[Options] = None) -> List[EvaluatedRow]:
    """
    Parse every corpus record with its own option overrides.

    Args:
        records: Corpus records
        base_options: Options the per-record overrides apply on top of

    Returns:
        One EvaluatedRow per record
    """
    base = (base_options or Options()).to_dict()
    parsers: Dict[str, FilenameParser] = {}
    rows = []
    for record in records:
        merged = {**base, **record.options}
        key = json.dumps(merged, sort_keys=True)
        if key not in parsers:
            parsers[key] = FilenameParser(Options.from_mapping(merged))
        parsed = elements_to_dict(parsers[key].parse(record.input))
        rows.append(EvaluatedRow(input=record.input, parsed=parsed, expected=record.expected))
    return rows


def evaluate_filenames(filenames: Sequence[str], options: Optional[Options] = None) -> List[EvaluatedRow]:
    """Parse unlabelled filenames for blind metrics."""
    parser = FilenameParser(options)
    return [EvaluatedRow(input=name, parsed=elements_to_dict(parser.parse(name))) for name in filenames]


def calculate_blind_metrics(rows: Sequence[EvaluatedRow]) -> Dict[str, Any]:
    """
    Calculate coverage metrics for blind mode.

    Metrics include field coverage (share of rows with each kind populated)
    and the rows that produced no anime title.
    """
    total_rows = len(rows)
    field_coverage = {
        kind: round(sum(1 for r in rows if kind in r.parsed) / total_rows, 4) if total_rows else 0.0
        for kind in EVALUATED_KINDS
    }
    return {
        "mode": "blind",
        "total_rows": total_rows,
        "field_coverage": field_coverage,
        "rows_without_title": [r.input for r in rows if ElementKind.ANIME_TITLE.value not in r.parsed],
        "timestamp": datetime.now().isoformat(),
    }


def calculate_reference_metrics(rows: Sequence[EvaluatedRow], samples: int = 10) -> Dict[str, Any]:
    """
    Calculate accuracy metrics against expected output.

    1. False negative rate: expected has a value but the parse has none
    2. False positive rate: expected has no value but the parse has one
    3. Accuracy rate: expected has a value and the parse matches it exactly
    4. Parsed perfect rate: every field of the file matches

    Args:
        rows: Evaluated rows with expected values
        samples: Mismatch samples to keep per field

    Returns:
        Metrics mapping
    """
    total_rows = len(rows)
    field_metrics: Dict[str, Dict[str, Any]] = {}
    mismatches: List[Dict[str, Any]] = []
    totals = {"fn": 0, "fn_opps": 0, "fp": 0, "fp_opps": 0, "acc": 0, "acc_opps": 0}

    for kind in EVALUATED_KINDS:
        fns = fps = acc = 0
        fn_opps = fp_opps = 0
        field_mismatches = []

        for row in rows:
            expected = (row.expected or {}).get(kind)
            parsed = row.parsed.get(kind)
            if expected is not None:
                fn_opps += 1
                if parsed is None:
                    fns += 1
                    field_mismatches.append({"input": row.input, "field": kind, "type": "false_negative", "parsed": parsed, "expected": expected})
                elif parsed == expected:
                    acc += 1
                else:
                    field_mismatches.append({"input": row.input, "field": kind, "type": "incorrect", "parsed": parsed, "expected": expected})
            else:
                fp_opps += 1
                if parsed is not None:
                    fps += 1
                    field_mismatches.append({"input": row.input, "field": kind, "type": "false_positive", "parsed": parsed, "expected": expected})

        totals["fn"] += fns
        totals["fn_opps"] += fn_opps
        totals["fp"] += fps
        totals["fp_opps"] += fp_opps
        totals["acc"] += acc
        totals["acc_opps"] += fn_opps

        field_metrics[kind] = {
            "false_negative_rate": _rate(fns, fn_opps),
            "false_negative_count": fns,
            "false_positive_rate": _rate(fps, fp_opps),
            "false_positive_count": fps,
            "accuracy_rate": _rate(acc, fn_opps),
            "accurate_count": acc,
            "opportunities": fn_opps,
        }
        mismatches.extend(field_mismatches[:samples])

    perfect = sum(1 for row in rows if row.perfect)
    return {
        "mode": "reference",
        "key_metrics": {
            "metadata_false_negative_rate": _rate(totals["fn"], totals["fn_opps"]),
            "metadata_false_positive_rate": _rate(totals["fp"], totals["fp_opps"]),
            "metadata_accuracy_rate": _rate(totals["acc"], totals["acc_opps"]),
            "parsed_perfect_rate": _rate(perfect, total_rows),
        },
        "summary": {
            "total_files": total_rows,
            "files_perfectly_parsed": perfect,
        },
        "field_breakdown": field_metrics,
        "sample_mismatches": mismatches,
        "timestamp": datetime.now().isoformat(),
    }


def _rate(count: int, opportunities: int) -> float:
    return round(count / opportunities * 100, 2) if opportunities else 0.0


def diff_cell(parsed: FieldValue, expected: FieldValue) -> Optional[str]:
    """Cell text for a diff sheet: the agreed value, or an expected/returned pair."""
    if parsed == expected:
        return _flatten(parsed)
    return json.dumps({"expected": expected, "returned": parsed}, ensure_ascii=False)


def _flatten(value: FieldValue) -> Optional[str]:
    if isinstance(value, list):
        return " | ".join(value)
    return value


def is_discrepancy_value(value: Any) -> bool:
    """Check if a cell value represents a discrepancy."""
    return value is not None and '"expected":' in str(value)


def rows_to_table(rows: Sequence[EvaluatedRow], diff: bool = False) -> List[List[Any]]:
    """Lay rows out as ``[input, kind...]`` cells, as diff cells when ``diff`` is set."""
    table = []
    for row in rows:
        if diff:
            cells = [diff_cell(row.parsed.get(kind), (row.expected or {}).get(kind)) for kind in EVALUATED_KINDS]
        else:
            cells = [_flatten(row.parsed.get(kind)) for kind in EVALUATED_KINDS]
        table.append([row.input] + cells)
    return table


def write_json_metrics(metrics: Mapping[str, Any], output_path: Union[str, Path]) -> Path:
    """Write metrics to a JSON file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(metrics, f, indent=2, ensure_ascii=False)
    logger.info("Wrote metrics to %s", output_path)
    return output_path
