#!/usr/bin/env python3
"""
Evaluation harness for the filename parser.

Provides two modes:
- blind: Coverage-first metrics for a plain list of filenames
- reference: Accuracy metrics against a labelled JSON corpus

Outputs:
- Excel workbook with parsed results (and Expected/Diff sheets in reference mode)
- JSON metrics file for automation
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

# Add parent directory to path to import the package without installing it
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from anitag.cli import read_filenames  # noqa: E402
from anitag.evaluation import (  # noqa: E402
    EVALUATED_KINDS,
    EvaluatedRow,
    calculate_blind_metrics,
    calculate_reference_metrics,
    evaluate_filenames,
    evaluate_records,
    is_discrepancy_value,
    load_corpus,
    rows_to_table,
    write_json_metrics,
)
from anitag.report import ExcelSheetData, write_excel_workbook  # noqa: E402


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Evaluate filename parser with coverage or reference metrics'
    )
    parser.add_argument(
        '--mode',
        choices=['blind', 'reference'],
        default='blind',
        help='Evaluation mode: blind (coverage) or reference (vs labels)'
    )
    parser.add_argument(
        '--input',
        required=True,
        help='Filenames, one per line (blind) or a JSON corpus (reference)'
    )
    parser.add_argument(
        '--output-excel',
        help='Output Excel file path (default: metrics/MODE-YYYYMMDD-HHMMSS.xlsx)'
    )
    parser.add_argument(
        '--output-json',
        help='Output JSON metrics file (default: metrics/MODE-YYYYMMDD-HHMMSS.json)'
    )
    parser.add_argument(
        '--limit',
        type=int,
        help='Limit number of files to process'
    )
    parser.add_argument(
        '--samples',
        type=int,
        default=10,
        help='Number of mismatch samples to capture per field (reference mode)'
    )
    parser.add_argument(
        '--skip-excel',
        action='store_true',
        help='Skip Excel output for faster CI runs'
    )
    return parser.parse_args(argv)


def build_sheets(rows: List[EvaluatedRow], mode: str) -> List[ExcelSheetData]:
    """
    Lay out evaluation rows as workbook sheets.

    For blind mode: single sheet with results
    For reference mode: Results, Expected and Diff sheets, with Diff
    discrepancies highlighted in yellow.
    """
    headers = ["input"] + EVALUATED_KINDS
    sheets = [ExcelSheetData(name="Results", headers=headers, rows=rows_to_table(rows))]
    if mode == 'reference':
        expected_rows = [EvaluatedRow(input=row.input, parsed=row.expected or {}) for row in rows]
        sheets.append(ExcelSheetData(name="Expected", headers=headers, rows=rows_to_table(expected_rows)))
        sheets.append(
            ExcelSheetData(
                name="Diff",
                headers=headers,
                rows=rows_to_table(rows, diff=True),
                highlight_discrepancies=True,
                discrepancy_predicate=is_discrepancy_value,
            )
        )
    return sheets


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_arguments(argv)
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    output_json = Path(args.output_json or ROOT / 'metrics' / f'{args.mode}-{timestamp}.json')
    output_excel = Path(args.output_excel or ROOT / 'metrics' / f'{args.mode}-{timestamp}.xlsx')

    print(f"Reading from: {args.input}")
    if args.mode == 'reference':
        records = load_corpus(args.input)[:args.limit]
        rows = evaluate_records(records)
        metrics = calculate_reference_metrics(rows, samples=args.samples)
        print(f"Accuracy: {metrics['key_metrics']['metadata_accuracy_rate']}% "
              f"(perfect files: {metrics['key_metrics']['parsed_perfect_rate']}%)")
    else:
        filenames = read_filenames(Path(args.input))[:args.limit]
        rows = evaluate_filenames(filenames)
        metrics = calculate_blind_metrics(rows)
        print(f"Parsed {metrics['total_rows']} filenames, "
              f"{len(metrics['rows_without_title'])} without a title")

    write_json_metrics(metrics, output_json)
    print(f"Metrics written to: {output_json}")
    if not args.skip_excel:
        write_excel_workbook(output_excel, build_sheets(rows, args.mode))
        print(f"Workbook written to: {output_excel}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
