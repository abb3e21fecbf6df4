#!/usr/bin/env python3
"""
Excel reports of parse results.

Thin wrappers around openpyxl so the CLI and the evaluation tool share the
same formatting (headers, auto-width, table style, highlighting).
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from .batch import ParsedFile
from .element import ElementKind, elements_to_dict

HighlightPredicate = Callable[[Any], bool]

# Every emitted kind gets a column; Unknown is never emitted
REPORT_KINDS = [kind for kind in ElementKind if kind is not ElementKind.UNKNOWN]

HIGHLIGHT_FILL = PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid")
BOLD_FONT = Font(bold=True)
MAX_COLUMN_WIDTH = 50


@dataclass(frozen=True)
class ExcelSheetData:
    """
    Describes a sheet to be written to the workbook.

    Attributes:
        name: Sheet/tab name.
        headers: Ordered list of column headers.
        rows: Row values already ordered to match headers.
        highlight_discrepancies: Whether to apply yellow fill when predicate matches.
        discrepancy_predicate: Optional per-cell predicate used when highlighting is enabled.
        highlight_rows: Optional per-row flags; flagged rows are filled whole.
        bold_cells: Optional per-cell bold flags.
    """

    name: str
    headers: Sequence[str]
    rows: Sequence[Sequence[Any]]
    highlight_discrepancies: bool = False
    discrepancy_predicate: Optional[HighlightPredicate] = None
    highlight_rows: Optional[Sequence[bool]] = None
    bold_cells: Optional[Sequence[Sequence[bool]]] = None

    def is_filled(self, row: int, value: Any) -> bool:
        """Whether the cell holding ``value`` in data row ``row`` gets the yellow fill."""
        if _flag(self.highlight_rows, row):
            return True
        if self.highlight_discrepancies and self.discrepancy_predicate is not None:
            return bool(self.discrepancy_predicate(value))
        return False

    def is_bold(self, row: int, column: int) -> bool:
        if self.bold_cells is None or row >= len(self.bold_cells):
            return False
        return _flag(self.bold_cells[row], column)

    @property
    def table_name(self) -> str:
        return "".join(ch for ch in self.name if ch.isalnum()) + "Table"


def _flag(flags: Optional[Sequence[bool]], index: int) -> bool:
    return flags is not None and index < len(flags) and bool(flags[index])


def _column_widths(sheet: ExcelSheetData) -> List[int]:
    """Widest rendered value per column, headers included, capped at 50."""
    widths = [len(str(header)) for header in sheet.headers]
    for row in sheet.rows:
        for column, value in enumerate(row[:len(widths)]):
            if value is not None:
                widths[column] = max(widths[column], len(str(value)))
    return [min(width + 2, MAX_COLUMN_WIDTH) for width in widths]


def _add_table(ws, sheet: ExcelSheetData) -> None:
    ref = f"A1:{get_column_letter(len(sheet.headers))}{len(sheet.rows) + 1}"
    table = Table(displayName=sheet.table_name, ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9",
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    ws.add_table(table)


def _render_sheet(ws, sheet: ExcelSheetData) -> None:
    """Fill one worksheet: header row, styled data rows, column widths, table."""
    ws.append(list(sheet.headers))
    for row_index, row in enumerate(sheet.rows):
        ws.append(list(row))
        # Row 1 holds the headers
        for column_index, cell in enumerate(ws[row_index + 2][:len(row)]):
            if sheet.is_filled(row_index, cell.value):
                cell.fill = HIGHLIGHT_FILL
            if sheet.is_bold(row_index, column_index):
                cell.font = BOLD_FONT

    for column, width in enumerate(_column_widths(sheet), 1):
        ws.column_dimensions[get_column_letter(column)].width = width

    if sheet.rows:
        _add_table(ws, sheet)


def write_excel_workbook(output_path: Union[Path, str], sheets: Sequence[ExcelSheetData]) -> Path:
    """
    Write a workbook holding one worksheet per sheet definition, in order.

    Args:
        output_path: Destination path; missing parent folders are created
        sheets: Sheet definitions to render

    Returns:
        Path to the written workbook

    Raises:
        ValueError: If ``sheets`` is empty
    """
    if not sheets:
        raise ValueError("At least one sheet must be provided to write a workbook.")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    # Start from an empty workbook so sheet order follows ``sheets``
    wb.remove(wb.active)
    for sheet in sheets:
        _render_sheet(wb.create_sheet(title=sheet.name), sheet)

    wb.save(output_path)
    return output_path


def _cell_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, list):
        return " | ".join(value)
    return value


def build_parse_sheet(parsed_files: Sequence[ParsedFile], name: str = "Parsed Filenames") -> ExcelSheetData:
    """
    Lay out parse results as one row per file and one column per element kind.

    Rows without an anime title are highlighted.

    Args:
        parsed_files: Results from BatchParser
        name: Sheet name

    Returns:
        ExcelSheetData ready for write_excel_workbook
    """
    headers = ["filename"] + [kind.value for kind in REPORT_KINDS]
    rows: List[List[Any]] = []
    missing_title: List[bool] = []
    for parsed in parsed_files:
        flat = elements_to_dict(parsed.elements)
        rows.append([parsed.filename] + [_cell_value(flat.get(kind.value)) for kind in REPORT_KINDS])
        missing_title.append(ElementKind.ANIME_TITLE.value not in flat)
    return ExcelSheetData(name=name, headers=headers, rows=rows, highlight_rows=missing_title)


def write_report_workbook(output_path: Union[Path, str], parsed_files: Sequence[ParsedFile], sheet_name: str = "Parsed Filenames") -> Path:
    """Write parse results to an ``.xlsx`` workbook with a single table sheet."""
    return write_excel_workbook(output_path, [build_parse_sheet(parsed_files, sheet_name)])
