#!/usr/bin/env python3
"""
ABOUTME: XML utility functions for document processing
ABOUTME: Sanitizes cell text and writes it into w:t nodes with correct space handling
"""

XML_SPACE_ATTR = '{http://www.w3.org/XML/1998/namespace}space'

# Keep: \t (0x09), \n (0x0A), \r (0x0D)
_ILLEGAL_XML_CHARS = ''.join(
    chr(c) for c in range(0x20)
    if c not in (0x09, 0x0A, 0x0D)
)
_ILLEGAL_XML_TABLE = str.maketrans('', '', _ILLEGAL_XML_CHARS)


def sanitize_xml_string(text: str) -> str:
    """
    Remove control characters that are illegal in XML 1.0.

    Spreadsheet cells occasionally carry stray control characters (pasted
    from other systems); lxml refuses to serialize them.

    Args:
        text: Text that may contain control characters

    Returns:
        Sanitized text safe for XML. Returns input unchanged if not a non-empty string.
    """
    if not text or not isinstance(text, str):
        return text
    return text.translate(_ILLEGAL_XML_TABLE)


def set_node_text(t_elem, text: str):
    """
    Assign text to a w:t element.

    Word drops leading/trailing whitespace of w:t unless xml:space="preserve"
    is set, so the attribute follows the text.
    """
    text = sanitize_xml_string(text) or ''
    t_elem.text = text
    if text and (text[0].isspace() or text[-1].isspace()):
        t_elem.set(XML_SPACE_ATTR, 'preserve')
