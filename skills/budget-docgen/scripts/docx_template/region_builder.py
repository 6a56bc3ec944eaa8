"""
ABOUTME: Builds the expense list that replaces the anchored template region
ABOUTME: Filters and sums row records, then renders styled w:p elements
"""

import warnings as _warnings
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

from docx.oxml import parse_xml

from xml_utils import sanitize_xml_string

from .common import (
    COL_CURRENT_APPROVED,
    COL_PROJECT,
    CURRENCY_SUFFIX,
    DEFAULT_STYLE,
    EXCLUDED_PROJECTS,
    FIRST_LINE_INDENT_TWIPS,
    NS,
    TOTAL_LABEL,
    DataCoercionWarning,
    ExpenseLineItem,
    FragmentStyle,
    RowRecord,
)


OCTOBER = 10
OCTOBER_CUTOFF_DAY = 18
DEFAULT_CUTOFF_DAY = 15

# Month wording when no target month is configured
DEFAULT_NOTICE_MONTH = '次月'

CLOSING_NOTICE_TEMPLATE = (
    "，请你处严格按费用明细开支，并按财务制度规定，"
    "务必于{month}{day}日前将本月相关合法单据寄到财务部核销，逾期不予报销。"
)


@dataclass
class RegionPlan:
    """Synthesized replacement for the anchored region"""
    items: List[ExpenseLineItem]
    total: Decimal
    blocks: List = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


# ============================================================
# Business Rules
# ============================================================

def coerce_amount(value) -> Tuple[Decimal, bool]:
    """
    Convert a cell value to Decimal.

    Examples:
        1200.0 -> (Decimal('1200.0'), True)
        " 1,200.5 " -> (Decimal('1200.5'), True)
        "" / None -> (Decimal('0'), True)
        "待定" -> (Decimal('0'), False)

    Returns:
        (amount, ok) - ok is False when a non-blank value could not be parsed
    """
    if value is None or isinstance(value, bool):
        return Decimal(0), value is None
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = str(value).strip().replace(',', '').replace('，', '')
        if not text:
            return Decimal(0), True
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return Decimal(0), False
    if not amount.is_finite():
        return Decimal(0), False
    return amount, True


def extract_expense_items(rows: Iterable[RowRecord]) -> Tuple[List[ExpenseLineItem], List[str]]:
    """
    Select the rows that become expense lines.

    Rows with an empty project, the total row (合计) and the catch-all row
    (其他) are skipped; the approved amount must be strictly positive.

    Returns:
        (items in source order, coercion warning messages)
    """
    items: List[ExpenseLineItem] = []
    warnings: List[str] = []
    for row in rows:
        name = str(row.get(COL_PROJECT) or '').strip()
        if not name or name in EXCLUDED_PROJECTS:
            continue
        raw = row.get(COL_CURRENT_APPROVED)
        amount, ok = coerce_amount(raw)
        if not ok:
            message = f"Unparseable amount for '{name}': {raw!r}, treated as 0"
            warnings.append(message)
            _warnings.warn(message, DataCoercionWarning, stacklevel=2)
            continue
        if amount > 0:
            items.append(ExpenseLineItem(name, amount))
    return items, warnings


def cutoff_day(month: Optional[int]) -> int:
    """Deadline day for returning receipts; October gets extra days"""
    if month == OCTOBER:
        return OCTOBER_CUTOFF_DAY
    return DEFAULT_CUTOFF_DAY


def build_closing_sentence(month: Optional[int]) -> str:
    month_text = f"{month}月" if month is not None else DEFAULT_NOTICE_MONTH
    return CLOSING_NOTICE_TEMPLATE.format(month=month_text, day=cutoff_day(month))


def format_amount(amount: Decimal) -> str:
    """
    Plain decimal rendering: no separators, no trailing zeros.

    Examples:
        Decimal('1200.0') -> '1200'
        Decimal('1200.50') -> '1200.5'
    """
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), 'f')


# ============================================================
# XML Builders
# ============================================================

def _escape_xml(text: str) -> str:
    """Escape XML special characters and remove illegal control characters"""
    text = sanitize_xml_string(text)
    return (text
        .replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;'))


def _text_xml(text: str) -> str:
    # Tabs and edge spaces need xml:space="preserve" to survive Word
    return f'<w:t xml:space="preserve">{_escape_xml(text)}</w:t>'


def _rpr_xml(style: FragmentStyle) -> str:
    bold = '<w:b/><w:bCs/>' if style.bold else ''
    return (
        '<w:rPr>'
        f'<w:rFonts w:ascii="{style.ascii_font}" w:hAnsi="{style.ascii_font}" '
        f'w:eastAsia="{style.east_asia_font}"/>'
        f'{bold}'
        f'<w:sz w:val="{style.size_half_points}"/>'
        f'<w:szCs w:val="{style.size_half_points}"/>'
        '</w:rPr>'
    )


def _run_xml(texts: List[str], style: FragmentStyle) -> str:
    return f'<w:r>{_rpr_xml(style)}{"".join(_text_xml(t) for t in texts)}</w:r>'


def _paragraph(runs_xml: List[str]):
    para_xml = (
        f'<w:p xmlns:w="{NS["w"]}">'
        f'<w:pPr><w:ind w:firstLine="{FIRST_LINE_INDENT_TWIPS}"/></w:pPr>'
        f'{"".join(runs_xml)}'
        '</w:p>'
    )
    return parse_xml(para_xml)


def build_line_paragraph(item: ExpenseLineItem, style: FragmentStyle = DEFAULT_STYLE):
    """Expense line: bold name run, then bold tab + amount run"""
    return _paragraph([
        _run_xml([item.name], style),
        _run_xml(['\t', format_amount(item.amount)], style),
    ])


def build_totals_paragraph(total: Decimal, month: Optional[int],
                           style: FragmentStyle = DEFAULT_STYLE):
    """Totals line: bold label, bold tab + total + currency, plain closing notice"""
    return _paragraph([
        _run_xml([TOTAL_LABEL], style),
        _run_xml([f"\t{format_amount(total)}{CURRENCY_SUFFIX}"], style),
        _run_xml([build_closing_sentence(month)], style.plain()),
    ])


def synthesize_region(rows: Iterable[RowRecord], month: Optional[int] = None,
                      style: FragmentStyle = DEFAULT_STYLE) -> RegionPlan:
    """
    Build the paragraphs that replace the anchored region.

    The document itself is never touched; callers insert plan.blocks in order.
    An empty item list still yields the totals paragraph with a zero total.
    """
    items, warnings = extract_expense_items(rows)
    total = sum((item.amount for item in items), Decimal(0))
    blocks = [build_line_paragraph(item, style) for item in items]
    blocks.append(build_totals_paragraph(total, month, style))
    return RegionPlan(items=items, total=total, blocks=blocks, warnings=warnings)
