"""Run-text splicing: rewrite a paragraph's text without changing its run layout."""

from typing import List

from lxml import etree

from xml_utils import set_node_text

from .common import NS


_TEXT_NODE_XPATH = etree.XPath('.//w:r/w:t', namespaces=NS)


def collect_text_nodes(para_elem) -> List:
    """
    Ordered w:t nodes of a paragraph.

    Runs nested in hyperlinks, smart tags or w:ins are included; deleted
    text (w:delText) is not, so the result matches what Word displays.
    """
    return _TEXT_NODE_XPATH(para_elem)


def paragraph_text(para_elem) -> str:
    """Concatenated text of all fragments in a paragraph"""
    return ''.join(t.text or '' for t in collect_text_nodes(para_elem))


def splice_fragments(fragments: List[str], replacement: str) -> List[str]:
    """
    Redistribute replacement text over existing fragment boundaries.

    Every fragment but the last takes at most its original length from the
    current cursor; the last fragment takes whatever remains. The number of
    fragments never changes and the pieces always join back to replacement.

    Examples:
        (["20", "25年", "12月"], "2026年1月") -> ["20", "26年", "1月"]
        (["合计", "100元"], "合计") -> ["合计", ""]
        (["a", "b"], "xyz123") -> ["x", "yz123"]
    """
    if not fragments:
        return []

    pieces: List[str] = []
    cursor = 0
    last = len(fragments) - 1
    for i, original in enumerate(fragments):
        if i == last:
            pieces.append(replacement[cursor:])
            break
        take = min(len(original), len(replacement) - cursor)
        if take > 0:
            pieces.append(replacement[cursor:cursor + take])
            cursor += take
        else:
            pieces.append('')
    return pieces


def splice_paragraph_text(para_elem, replacement: str) -> bool:
    """
    Replace a paragraph's concatenated text in place.

    Only the w:t payloads change; run properties (bold totals, fonts) stay
    attached to the runs they were on.

    Returns:
        True if any fragment was rewritten, False for a paragraph without text nodes
    """
    nodes = collect_text_nodes(para_elem)
    if not nodes:
        return False

    pieces = splice_fragments([t.text or '' for t in nodes], replacement)
    for node, piece in zip(nodes, pieces):
        if (node.text or '') != piece:
            set_node_text(node, piece)
    return True
