#!/usr/bin/env python3
"""
ABOUTME: Reads the office budget workbook into DataGroup records using openpyxl
ABOUTME: One worksheet per office: title in C1, headers in rows 2-3, data from row 4
"""

import sys
from pathlib import Path
from typing import List, Optional

try:
    from openpyxl import load_workbook
except ImportError:
    print("Error: openpyxl not installed. Run: pip install openpyxl", file=sys.stderr)
    sys.exit(1)

from docx_template.common import COLUMNS, COL_PROJECT, DataGroup, RowRecord


# Sheets smaller than this are not budget sheets (title + 2 header rows + data, 7 columns)
MIN_ROWS = 4
MIN_COLUMNS = len(COLUMNS)

FIRST_DATA_ROW = 4
TITLE_ROW = 1
TITLE_COLUMN = 3   # C


def _cell_text(value) -> str:
    if value is None:
        return ''
    return str(value).strip()


def _cell_value(value):
    """Numbers stay numeric (as float), blanks become '', everything else text"""
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return float(value)
    return str(value)


def read_sheet_title(worksheet) -> str:
    """
    Title from C1, or from the merged range covering C1.

    openpyxl stores a merged range's value in its top-left cell only, so a
    title merged across A1:G1 is read from A1.
    """
    title = _cell_text(worksheet.cell(row=TITLE_ROW, column=TITLE_COLUMN).value)
    if title:
        return title

    for merged in worksheet.merged_cells.ranges:
        if (merged.min_row <= TITLE_ROW <= merged.max_row and
                merged.min_col <= TITLE_COLUMN <= merged.max_col):
            return _cell_text(worksheet.cell(row=merged.min_row, column=merged.min_col).value)
    return ''


def read_sheet(worksheet) -> Optional[DataGroup]:
    """
    Convert one worksheet to a DataGroup.

    Returns:
        DataGroup, or None if the sheet is too small to be a budget sheet
    """
    if worksheet.max_row < MIN_ROWS or worksheet.max_column < MIN_COLUMNS:
        return None

    group = DataGroup(name=worksheet.title, title=read_sheet_title(worksheet))

    for values in worksheet.iter_rows(min_row=FIRST_DATA_ROW, max_col=MIN_COLUMNS, values_only=True):
        values = list(values) + [None] * (MIN_COLUMNS - len(values))
        project = _cell_text(values[0])
        if not project:
            continue

        row: RowRecord = {COL_PROJECT: project}
        for key, value in zip(COLUMNS[1:], values[1:]):
            row[key] = _cell_value(value)
        group.rows.append(row)

    return group


def read_workbook(file_path: str) -> List[DataGroup]:
    """
    Read every budget sheet of a workbook, in sheet order.

    Formulas are read as their cached values (data_only=True); a workbook
    saved by a tool that does not cache results yields blank amounts.
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Workbook not found: {path}")

    workbook = load_workbook(str(path), data_only=True)
    try:
        groups = []
        for worksheet in workbook.worksheets:
            group = read_sheet(worksheet)
            if group is not None:
                groups.append(group)
        return groups
    finally:
        workbook.close()
