"""
ABOUTME: Ordered text replacement rules evaluated per paragraph
ABOUTME: Higher-priority rules suppress lower-priority rules of the same group
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Set

from .run_splice import paragraph_text, splice_paragraph_text


# Matches: 2025年12月, 2026年1月
YEAR_MONTH_PATTERN = re.compile(r'\d{4}年\d{1,2}月')

# Matches: 12月, 3月 (not the tail of a longer number such as 2025月)
MONTH_PATTERN = re.compile(r'(?<!\d)\d{1,2}月')

DATE_GROUP = 'date'


@dataclass(frozen=True)
class PatternRule:
    """Single replacement rule; rules sharing a group are mutually exclusive per paragraph"""
    name: str
    pattern: Pattern
    replacement: str
    group: Optional[str] = None

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def apply(self, text: str) -> str:
        # Literal replacement: backslashes in the new text are not group refs
        return self.pattern.sub(lambda _m: self.replacement, text)


def literal_rule(old: str, new: str, name: str = None) -> PatternRule:
    """Rule replacing every occurrence of a fixed string"""
    if not old:
        raise ValueError("Literal rule needs a non-empty search string")
    return PatternRule(name or f"literal:{old}", re.compile(re.escape(old)), new)


def build_date_rules(year: int, month: int) -> List[PatternRule]:
    """
    Date substitution rules in priority order.

    A paragraph containing a year-qualified month (2025年12月) is rewritten
    by the first rule only; bare months elsewhere in that paragraph are left
    alone so the new year+month is never rewritten a second time.
    """
    return [
        PatternRule('year-month', YEAR_MONTH_PATTERN, f"{year}年{month}月", DATE_GROUP),
        PatternRule('month', MONTH_PATTERN, f"{month}月", DATE_GROUP),
    ]


def replace_in_paragraph(para_elem, rules: Iterable[PatternRule]) -> List[str]:
    """
    Apply rules in order to one paragraph.

    Each rule sees the paragraph text as left by the previous rules. The
    result is written back through the splicer so the run count survives.

    Returns:
        Names of the rules that changed the paragraph
    """
    original = paragraph_text(para_elem)
    if not original:
        return []

    text = original
    applied: List[str] = []
    claimed_groups: Set[str] = set()

    for rule in rules:
        if rule.group is not None and rule.group in claimed_groups:
            continue
        if not rule.matches(text):
            continue
        if rule.group is not None:
            claimed_groups.add(rule.group)
        new_text = rule.apply(text)
        if new_text != text:
            text = new_text
            applied.append(rule.name)

    if text != original:
        splice_paragraph_text(para_elem, text)
    return applied
