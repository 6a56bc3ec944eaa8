"""Anchor navigation: locate the replaceable region between marker paragraphs."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Sequence, Tuple

from lxml import etree

from .common import NS, AnchorRegion, InvalidTemplate, RegionNotFound, format_text_preview
from .run_splice import paragraph_text


BlockPredicate = Callable[[str], bool]

W_P = f'{{{NS["w"]}}}p'

START_MARKER = '批复如下：'
TOTAL_KEYWORDS = ('合计',)
CURRENCY_KEYWORDS = ('元',)
CLOSING_PHRASES = ('请你处严格', '严格按费用明细')


# ============================================================
# Predicates
# ============================================================

def contains_all(*phrases: str) -> BlockPredicate:
    """Predicate: block text contains every phrase"""
    return lambda text: all(p in text for p in phrases)


def contains_any(*phrases: str) -> BlockPredicate:
    """Predicate: block text contains at least one phrase"""
    return lambda text: any(p in text for p in phrases)


def all_of(*predicates: BlockPredicate) -> BlockPredicate:
    return lambda text: all(pred(text) for pred in predicates)


@dataclass(frozen=True)
class AnchorSpec:
    """
    Predicates bounding the region rebuilt from data rows.

    start:       paragraph after which synthesized content is inserted
    end_strict:  old totals paragraph carrying the closing notice
    end_relaxed: fallback end when no paragraph satisfies end_strict
    """
    start: BlockPredicate
    end_strict: BlockPredicate
    end_relaxed: BlockPredicate


def build_anchor_spec(start_phrases: Sequence[str] = (START_MARKER,),
                      total_keywords: Sequence[str] = TOTAL_KEYWORDS,
                      currency_keywords: Sequence[str] = CURRENCY_KEYWORDS,
                      closing_phrases: Sequence[str] = CLOSING_PHRASES) -> AnchorSpec:
    """Build an AnchorSpec from marker phrases"""
    if not start_phrases or not total_keywords or not currency_keywords:
        raise ValueError("Anchor phrases must not be empty")
    relaxed = all_of(contains_any(*total_keywords), contains_any(*currency_keywords))
    strict = relaxed
    if closing_phrases:
        strict = all_of(relaxed, contains_any(*closing_phrases))
    return AnchorSpec(
        start=contains_any(*start_phrases),
        end_strict=strict,
        end_relaxed=relaxed,
    )


DEFAULT_ANCHOR_SPEC = build_anchor_spec()


def load_anchor_spec(path: str) -> AnchorSpec:
    """
    Load marker phrases from a JSON file.

    Format (every key optional, lists of strings):
        {"start": ["批复如下："], "total": ["合计"], "currency": ["元"],
         "closing": ["请你处严格", "严格按费用明细"]}
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Anchor file must contain a JSON object: {path}")

    def _phrases(key: str, default: Sequence[str]) -> Tuple[str, ...]:
        value = data.get(key, default)
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValueError(f"Anchor key '{key}' must be a string or list of strings in {Path(path).name}")
        return tuple(value)

    return build_anchor_spec(
        start_phrases=_phrases('start', (START_MARKER,)),
        total_keywords=_phrases('total', TOTAL_KEYWORDS),
        currency_keywords=_phrases('currency', CURRENCY_KEYWORDS),
        closing_phrases=_phrases('closing', CLOSING_PHRASES),
    )


# ============================================================
# Navigation Mixin
# ============================================================

class AnchorNavigationMixin:
        def _xpath(self, elem, expr: str):
            """
            Execute XPath expression with proper namespace handling.

            python-docx's BaseOxmlElement has namespaces pre-registered,
            while pure lxml elements (used in tests) require explicit namespaces.
            """
            try:
                return elem.xpath(expr)
            except (etree.XPathEvalError, TypeError):
                return elem.xpath(expr, namespaces=NS)

        def _require_blocks(self, body_elem) -> List:
            """Top-level blocks of w:body; raises InvalidTemplate if there are none"""
            if body_elem is None:
                raise InvalidTemplate("Document has no body")
            blocks = list(body_elem)
            if not any(block.tag == W_P for block in blocks):
                raise InvalidTemplate("Document body has no paragraphs")
            return blocks

        def _iter_paragraph_blocks(self, blocks: List, start: int = 0) -> Iterator[Tuple[int, object]]:
            """Yield (index, element) for top-level paragraphs from start onward"""
            for index in range(start, len(blocks)):
                if blocks[index].tag == W_P:
                    yield index, blocks[index]

        def _find_block(self, blocks: List, predicate: BlockPredicate, start: int = 0) -> int:
            for index, para in self._iter_paragraph_blocks(blocks, start):
                if predicate(paragraph_text(para)):
                    return index
            return -1

        def _locate_anchor_region(self, body_elem, spec: AnchorSpec = DEFAULT_ANCHOR_SPEC) -> AnchorRegion:
            """
            Find the start marker paragraph and the first end marker after it.

            Only direct paragraph children of the body are considered; indices
            count every body child so they can be used for removal/insertion.
            The first start marker wins if the template holds several.

            Raises:
                InvalidTemplate: body missing or without paragraphs
                RegionNotFound: no start marker, or no end marker after it
            """
            blocks = self._require_blocks(body_elem)

            start = self._find_block(blocks, spec.start)
            if start < 0:
                raise RegionNotFound("Start marker of the expense list not found")

            end = self._find_block(blocks, spec.end_strict, start + 1)
            relaxed = False
            if end < 0:
                end = self._find_block(blocks, spec.end_relaxed, start + 1)
                relaxed = True
            if end < 0:
                preview = format_text_preview(paragraph_text(blocks[start]))
                raise RegionNotFound(f"End marker of the expense list not found after: {preview}")

            return AnchorRegion(start=start, end=end, relaxed=relaxed)

        def _replace_region(self, body_elem, region: AnchorRegion, new_blocks: List) -> int:
            """
            Remove paragraph blocks in the region and insert new_blocks after the start marker.

            Tables inside the region are kept; they end up after the inserted blocks.

            Returns:
                Number of paragraphs removed
            """
            blocks = list(body_elem)
            removed = 0
            for index in reversed(region.removal_range):
                if blocks[index].tag == W_P:
                    body_elem.remove(blocks[index])
                    removed += 1

            insert_at = region.start + 1
            for offset, block in enumerate(new_blocks):
                body_elem.insert(insert_at + offset, block)
            return removed
