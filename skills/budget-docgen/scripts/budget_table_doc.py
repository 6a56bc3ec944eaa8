#!/usr/bin/env python3
"""
ABOUTME: Builds a standalone budget table document for one DataGroup
ABOUTME: Two-tier merged header (vMerge/gridSpan via python-docx), one row per record
"""

from pathlib import Path

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

from docx_template.common import (
    COLUMNS,
    COL_PROJECT,
    TOTAL_LABEL,
    DataGroup,
)
from xml_utils import sanitize_xml_string


TITLE_SIZE = Pt(16)
TITLE_SPACE_AFTER = Pt(10)

# (row, col, row_span, col_span, text) for the two header rows
HEADER_CELLS = [
    (0, 0, 2, 1, '项目'),
    (0, 1, 1, 2, '本月费用预算'),
    (0, 3, 2, 1, '本月批复数'),
    (0, 4, 1, 2, '上月费用批复数/执行数'),
    (0, 6, 2, 1, '备注'),
    (1, 1, 1, 1, '办事处预算'),
    (1, 2, 1, 1, '公司预算'),
    (1, 4, 1, 1, '批复数'),
    (1, 5, 1, 1, '执行数'),
]
HEADER_ROWS = 2


def format_cell_value(value) -> str:
    """
    Display text for a row value.

    Examples:
        1200.0 -> "1200"
        0.0 -> ""
        "见附件" -> "见附件"
    """
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        return '' if value == 0 else f"{value:.0f}"
    if value is None:
        return ''
    return sanitize_xml_string(str(value))


def _write_cell(cell, text: str, bold: bool = False, align=WD_ALIGN_PARAGRAPH.LEFT):
    para = cell.paragraphs[0]
    para.alignment = align
    run = para.add_run(text)
    if bold:
        run.bold = True


def _add_header(table):
    for row, col, row_span, col_span, text in HEADER_CELLS:
        cell = table.cell(row, col)
        if row_span > 1 or col_span > 1:
            cell = cell.merge(table.cell(row + row_span - 1, col + col_span - 1))
        _write_cell(cell, text, bold=True, align=WD_ALIGN_PARAGRAPH.CENTER)


def build_table_document(group: DataGroup):
    """
    Create a Document with the group title and its budget table.

    Raises:
        ValueError: if the group has no rows
    """
    if not group.rows:
        raise ValueError(f"Sheet '{group.name}' has no data rows")

    document = Document()

    title = document.add_paragraph()
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    title.paragraph_format.space_after = TITLE_SPACE_AFTER
    title_run = title.add_run(sanitize_xml_string(group.display_title))
    title_run.bold = True
    title_run.font.size = TITLE_SIZE

    document.add_paragraph()

    table = document.add_table(rows=HEADER_ROWS + len(group.rows), cols=len(COLUMNS))
    table.style = 'Table Grid'
    _add_header(table)

    for offset, record in enumerate(group.rows):
        cells = table.rows[HEADER_ROWS + offset].cells
        is_total = str(record.get(COL_PROJECT, '')).strip() == TOTAL_LABEL
        for col, key in enumerate(COLUMNS):
            align = WD_ALIGN_PARAGRAPH.LEFT if key == COL_PROJECT else WD_ALIGN_PARAGRAPH.RIGHT
            _write_cell(cells[col], format_cell_value(record.get(key, '')), bold=is_total, align=align)

    return document


def write_table_document(group: DataGroup, output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    build_table_document(group).save(str(output_path))
    return output_path
