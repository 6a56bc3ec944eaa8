#!/usr/bin/env python3
"""
ABOUTME: Unit tests for anchor region navigation
ABOUTME: Start/end marker search, relaxed fallback, region replacement, JSON anchor config
"""

import json
import sys
from pathlib import Path

TESTS_DIR = Path(__file__).parent
sys.path.insert(0, str(TESTS_DIR))

import pytest  # noqa: E402
from lxml import etree  # noqa: E402

from _docgen_helpers import (  # noqa: E402
    CLOSING_TEXT,
    NSMAP,
    START_TEXT,
    TABLE,
    W,
    block_texts,
    create_body,
    create_paragraph,
)
from docx_template.common import (  # noqa: E402  # type: ignore[import-not-found]
    AnchorRegion,
    InvalidTemplate,
    RegionNotFound,
)
from docx_template.navigation import (  # noqa: E402  # type: ignore[import-not-found]
    DEFAULT_ANCHOR_SPEC,
    AnchorNavigationMixin,
    build_anchor_spec,
    load_anchor_spec,
)


@pytest.fixture
def navigator():
    return AnchorNavigationMixin()


class TestLocateAnchorRegion:
    """Tests for _locate_anchor_region"""

    def test_strict_end_marker(self, navigator):
        """End is the totals paragraph carrying the closing notice"""
        body = create_body(
            ("标题",),
            ("你处", START_TEXT),
            ("办公费", "3000"),
            ("合计", "3000元"),                   # totals without notice
            ("合计", "3000元", CLOSING_TEXT),
            ("财务部",),
        )
        region = navigator._locate_anchor_region(body)
        assert region == AnchorRegion(start=1, end=4, relaxed=False)

    def test_relaxed_fallback(self, navigator):
        """Without a closing notice the first totals+currency paragraph is the end"""
        body = create_body(
            (START_TEXT,),
            ("办公费", "3000"),
            ("合计", "3000元"),
            ("合计：", "5000元"),
        )
        region = navigator._locate_anchor_region(body)
        assert region.start == 0
        assert region.end == 2
        assert region.relaxed is True

    def test_marker_split_across_runs(self, navigator):
        body = create_body(
            ("经审核，批复", "如下", "："),
            ("合", "计3000", "元，请你处", "严格执行"),
        )
        region = navigator._locate_anchor_region(body)
        assert (region.start, region.end) == (0, 1)

    def test_missing_start_marker(self, navigator):
        body = create_body(("办公费",), ("合计", "3000元", CLOSING_TEXT))
        with pytest.raises(RegionNotFound, match="Start marker"):
            navigator._locate_anchor_region(body)

    def test_missing_end_marker(self, navigator):
        body = create_body((START_TEXT,), ("办公费", "3000"), ("财务部",))
        with pytest.raises(RegionNotFound, match="End marker"):
            navigator._locate_anchor_region(body)

    def test_end_before_start_ignored(self, navigator):
        """Totals paragraphs before the start marker never count"""
        body = create_body(("合计", "1元", CLOSING_TEXT), (START_TEXT,), ("正文",))
        with pytest.raises(RegionNotFound):
            navigator._locate_anchor_region(body)

    def test_first_start_marker_wins(self, navigator):
        body = create_body(
            (START_TEXT,),
            ("合计", "1元", CLOSING_TEXT),
            (START_TEXT,),
            ("合计", "2元", CLOSING_TEXT),
        )
        region = navigator._locate_anchor_region(body)
        assert (region.start, region.end) == (0, 1)

    def test_table_blocks_counted_in_indices(self, navigator):
        """Indices refer to body children, tables included"""
        body = create_body(TABLE, (START_TEXT,), TABLE, ("合计", "1元", CLOSING_TEXT))
        region = navigator._locate_anchor_region(body)
        assert (region.start, region.end) == (1, 3)

    def test_table_text_is_not_a_marker(self, navigator):
        """Only top-level paragraphs are candidates"""
        body = create_body((START_TEXT,), TABLE)
        body[1].find(f'.//{W}t').text = "合计100元"
        with pytest.raises(RegionNotFound):
            navigator._locate_anchor_region(body)

    def test_empty_body_invalid(self, navigator):
        body = etree.Element(f'{W}body', nsmap=NSMAP)
        with pytest.raises(InvalidTemplate):
            navigator._locate_anchor_region(body)

    def test_missing_body_invalid(self, navigator):
        with pytest.raises(InvalidTemplate):
            navigator._locate_anchor_region(None)


class TestReplaceRegion:
    """Tests for _replace_region"""

    def test_paragraphs_replaced_in_order(self, navigator):
        body = create_body(
            (START_TEXT,),
            ("办公费", "3000"),
            ("合计", "3000元", CLOSING_TEXT),
            ("财务部",),
        )
        region = navigator._locate_anchor_region(body)
        removed = navigator._replace_region(
            body, region, [create_paragraph("新一"), create_paragraph("新二")]
        )
        assert removed == 2
        assert block_texts(body) == [START_TEXT, "新一", "新二", "财务部"]

    def test_tables_inside_region_kept(self, navigator):
        body = create_body(
            (START_TEXT,),
            TABLE,
            ("办公费", "3000"),
            ("合计", "3000元", CLOSING_TEXT),
        )
        region = navigator._locate_anchor_region(body)
        navigator._replace_region(body, region, [create_paragraph("合计0元")])
        assert block_texts(body) == [START_TEXT, "合计0元", "<table>"]
        assert body[-1].tag == f'{W}sectPr'


class TestAnchorSpec:
    """Tests for configurable marker phrases"""

    def test_default_spec_predicates(self):
        assert DEFAULT_ANCHOR_SPEC.start("经研究，批复如下：")
        assert DEFAULT_ANCHOR_SPEC.end_strict("合计500元，严格按费用明细开支")
        assert not DEFAULT_ANCHOR_SPEC.end_strict("合计500元")
        assert DEFAULT_ANCHOR_SPEC.end_relaxed("合计500元")
        assert not DEFAULT_ANCHOR_SPEC.end_relaxed("合计500")

    def test_build_without_closing_phrases(self):
        """Empty closing list makes strict and relaxed equivalent"""
        spec = build_anchor_spec(closing_phrases=())
        assert spec.end_strict("合计1元")

    def test_load_from_json(self, tmp_path, navigator):
        anchors = tmp_path / "anchors.json"
        anchors.write_text(json.dumps({
            "start": ["Approved as follows:"],
            "total": "Total",
            "currency": ["USD"],
            "closing": [],
        }, ensure_ascii=False), encoding='utf-8')

        spec = load_anchor_spec(str(anchors))
        body = create_body(("Approved as follows:",), ("Rent", "100"), ("Total", " 100 USD"))
        region = navigator._locate_anchor_region(body, spec)
        assert (region.start, region.end) == (0, 2)

    def test_load_rejects_bad_values(self, tmp_path):
        anchors = tmp_path / "anchors.json"
        anchors.write_text(json.dumps({"start": [1, 2]}), encoding='utf-8')
        with pytest.raises(ValueError):
            load_anchor_spec(str(anchors))

    def test_load_rejects_empty_start(self, tmp_path):
        anchors = tmp_path / "anchors.json"
        anchors.write_text(json.dumps({"start": []}), encoding='utf-8')
        with pytest.raises(ValueError):
            load_anchor_spec(str(anchors))
