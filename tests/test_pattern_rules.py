#!/usr/bin/env python3
"""
ABOUTME: Unit tests for per-paragraph pattern rules
ABOUTME: Literal replacement across runs, date precedence, group suppression
"""

import re
import sys
from pathlib import Path

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

import pytest  # noqa: E402

from _docgen_helpers import create_paragraph, fragment_texts  # noqa: E402
from docx_template.pattern_rules import (  # noqa: E402  # type: ignore[import-not-found]
    PatternRule,
    build_date_rules,
    literal_rule,
    replace_in_paragraph,
)
from docx_template.run_splice import paragraph_text  # noqa: E402  # type: ignore[import-not-found]


class TestLiteralRule:
    """Tests for fixed-string replacement"""

    def test_match_split_across_runs(self):
        """Placeholder split over three runs is still found and replaced"""
        para = create_paragraph("关于", "天河", "办事处", "的批复")
        applied = replace_in_paragraph(para, [literal_rule("天河办事处", "广州办事处")])

        assert applied == ["literal:天河办事处"]
        assert paragraph_text(para) == "关于广州办事处的批复"
        assert len(fragment_texts(para)) == 4

    def test_every_occurrence_replaced(self):
        para = create_paragraph("天河办事处：天河办事处")
        replace_in_paragraph(para, [literal_rule("天河办事处", "番禺办事处")])
        assert paragraph_text(para) == "番禺办事处：番禺办事处"

    def test_idempotent(self):
        """Second application finds nothing and leaves text unchanged"""
        rule = literal_rule("A", "B")
        para = create_paragraph("xA", "Ay")
        replace_in_paragraph(para, [rule])
        once = fragment_texts(para)
        assert replace_in_paragraph(para, [rule]) == []
        assert fragment_texts(para) == once

    def test_no_match_untouched(self):
        para = create_paragraph("没有占位符")
        assert replace_in_paragraph(para, [literal_rule("天河办事处", "广州办事处")]) == []
        assert fragment_texts(para) == ["没有占位符"]

    def test_replacement_backslash_is_literal(self):
        """Backslashes in the new text are not treated as group references"""
        para = create_paragraph("路径X")
        replace_in_paragraph(para, [literal_rule("X", r"C:\1")])
        assert paragraph_text(para) == r"路径C:\1"

    def test_empty_search_string_rejected(self):
        with pytest.raises(ValueError):
            literal_rule("", "x")


class TestDateRules:
    """Tests for year+month and standalone month substitution"""

    def test_year_month_precedence(self):
        """Year-qualified match suppresses the standalone month rule"""
        para = create_paragraph("2025年12月的预算")
        applied = replace_in_paragraph(para, build_date_rules(2026, 1))

        assert applied == ["year-month"]
        assert paragraph_text(para) == "2026年1月的预算"

    def test_year_month_split_across_runs(self):
        para = create_paragraph("20", "25年12", "月日常费用")
        replace_in_paragraph(para, build_date_rules(2025, 3))
        assert paragraph_text(para) == "2025年3月日常费用"
        assert len(fragment_texts(para)) == 3

    def test_standalone_month_replaced(self):
        """Paragraph with only bare months gets every month rewritten"""
        para = create_paragraph("你处", "12月", "费用，11月执行")
        applied = replace_in_paragraph(para, build_date_rules(2025, 3))

        assert applied == ["month"]
        assert paragraph_text(para) == "你处3月费用，3月执行"

    def test_bare_month_next_to_year_month_untouched(self):
        """Suppression covers the whole paragraph, not only the matched span"""
        para = create_paragraph("2025年12月预算，12月底前")
        replace_in_paragraph(para, build_date_rules(2026, 1))
        assert paragraph_text(para) == "2026年1月预算，12月底前"

    def test_month_not_taken_from_longer_number(self):
        para = create_paragraph("编号123月")
        assert replace_in_paragraph(para, build_date_rules(2025, 3)) == []

    def test_cross_paragraph_pattern_not_detected(self):
        """Year in one paragraph and month in the next are separate texts"""
        first = create_paragraph("2025年")
        second = create_paragraph("度总结")
        rules = build_date_rules(2026, 1)
        assert replace_in_paragraph(first, rules) == []
        assert replace_in_paragraph(second, rules) == []
        assert paragraph_text(first) == "2025年"


class TestRuleOrdering:
    """Tests for group-based suppression"""

    def test_ungrouped_rule_does_not_suppress(self):
        """Office rule and a date rule both apply to one paragraph"""
        para = create_paragraph("天河办事处", "12月预算")
        rules = [literal_rule("天河办事处", "广州办事处", name='office')] + build_date_rules(2025, 4)
        applied = replace_in_paragraph(para, rules)

        assert applied == ["office", "month"]
        assert paragraph_text(para) == "广州办事处4月预算"

    def test_suppression_is_per_paragraph(self):
        """A claimed group in one paragraph does not affect the next"""
        rules = build_date_rules(2025, 5)
        first = create_paragraph("2024年12月")
        second = create_paragraph("12月")
        replace_in_paragraph(first, rules)
        replace_in_paragraph(second, rules)
        assert paragraph_text(first) == "2025年5月"
        assert paragraph_text(second) == "5月"

    def test_custom_group_first_match_wins(self):
        rules = [
            PatternRule('long', re.compile('ABC'), 'x', group='g'),
            PatternRule('short', re.compile('A'), 'y', group='g'),
        ]
        para = create_paragraph("ABC A")
        assert replace_in_paragraph(para, rules) == ['long']
        assert paragraph_text(para) == "x A"
