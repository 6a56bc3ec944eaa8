"""
ABOUTME: Shared constants, data classes and error types for template mutation
ABOUTME: Used by the splicer, pattern rules, anchor navigation and region builder
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


# ============================================================
# Constants
# ============================================================

NS = {
    'w': 'http://schemas.openxmlformats.org/wordprocessingml/2006/main',
}

# Row record column keys, in spreadsheet order (A..G)
COL_PROJECT = 'project'
COL_OFFICE_BUDGET = 'office-budget'
COL_COMPANY_BUDGET = 'company-budget'
COL_CURRENT_APPROVED = 'current-approved'
COL_PRIOR_APPROVED = 'prior-approved'
COL_PRIOR_EXECUTED = 'prior-executed'
COL_REMARK = 'remark'

COLUMNS = (
    COL_PROJECT,
    COL_OFFICE_BUDGET,
    COL_COMPANY_BUDGET,
    COL_CURRENT_APPROVED,
    COL_PRIOR_APPROVED,
    COL_PRIOR_EXECUTED,
    COL_REMARK,
)

TOTAL_LABEL = '合计'
OTHER_LABEL = '其他'
CURRENCY_SUFFIX = '元'

# Project names that never become expense line items
EXCLUDED_PROJECTS = (TOTAL_LABEL, OTHER_LABEL)

DEFAULT_OFFICE_PLACEHOLDER = '天河办事处'
OFFICE_SUFFIX = '办事处'

# First-line indent of synthesized paragraphs: two full-width characters (twips)
FIRST_LINE_INDENT_TWIPS = 720

DOCX_EXTENSION = 'docx'

# Characters that cannot appear in an output file name
ILLEGAL_FILENAME_PATTERN = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


# ============================================================
# Errors
# ============================================================

class DocgenError(Exception):
    """Base class for document generation failures"""


class RegionNotFound(DocgenError):
    """Start or end anchor of the replaceable region is missing"""


class InvalidTemplate(DocgenError):
    """Document tree has no usable body"""


class UnsupportedTemplateFormat(DocgenError):
    """Template is not a .docx package; no group can proceed"""


class DataCoercionWarning(UserWarning):
    """An amount cell could not be parsed and was treated as zero"""


# ============================================================
# Data Classes
# ============================================================

RowRecord = Dict[str, object]


@dataclass
class DataGroup:
    """One worksheet worth of rows; produces one output document"""
    name: str
    title: str = ''
    rows: List[RowRecord] = field(default_factory=list)

    @property
    def display_title(self) -> str:
        return self.title or f"{self.name}日常费用预算财务"


@dataclass(frozen=True)
class FragmentStyle:
    """Run formatting applied to every synthesized fragment"""
    east_asia_font: str = '楷体_GB2312'
    ascii_font: str = 'KaiTi_GB2312'
    size_half_points: int = 28   # 14pt (四号)
    bold: bool = True

    def plain(self) -> 'FragmentStyle':
        """Same font and size without bold"""
        return FragmentStyle(self.east_asia_font, self.ascii_font,
                             self.size_half_points, bold=False)


DEFAULT_STYLE = FragmentStyle()


@dataclass(frozen=True)
class ExpenseLineItem:
    name: str
    amount: Decimal


@dataclass(frozen=True)
class AnchorRegion:
    """Block indices of the start and end marker paragraphs in w:body"""
    start: int
    end: int
    relaxed: bool = False   # End found by the totals+currency fallback

    @property
    def removal_range(self) -> range:
        """Indices replaced by synthesized content (end marker included)"""
        return range(self.start + 1, self.end + 1)


class PipelineState(Enum):
    LOADED = 'loaded'
    REPLACED = 'replaced'
    SPLICED = 'spliced'
    PERSISTED = 'persisted'
    FAILED = 'failed'


@dataclass
class GroupResult:
    """Outcome of generating one group's document"""
    group_name: str
    success: bool
    state: PipelineState            # PERSISTED on success, FAILED otherwise
    stage: Optional[PipelineState] = None   # Last stage completed before failure
    output_path: Optional[Path] = None
    error_message: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    item_count: int = 0
    total: Decimal = Decimal(0)
    rules_applied: int = 0


# ============================================================
# Helper Functions
# ============================================================

def safe_filename(name: str) -> str:
    """
    Make a group name usable as a file name.

    Examples:
        "广州" -> "广州"
        "a/b" -> "a_b"
        "  " -> "_"
    """
    cleaned = ILLEGAL_FILENAME_PATTERN.sub('_', name).strip().strip('.')
    return cleaned or '_'


def format_text_preview(text: str, max_len: int = 30) -> str:
    """
    Format text for log output: remove newlines and truncate.

    Args:
        text: Text to format
        max_len: Maximum length before truncation

    Returns:
        Clean, truncated text with "..." suffix if truncated
    """
    clean = text.replace('\n', ' ').replace('\r', '').replace('\t', ' ')
    while '  ' in clean:
        clean = clean.replace('  ', ' ')
    clean = clean.strip()
    if len(clean) > max_len:
        return clean[:max_len] + "..."
    return clean
