"""
Rotation Data Proxy - Text Normalizer

Flattens scraped markup and PDF text layers into one searchable string.
"""
from __future__ import annotations

import re
from typing import Optional

_TAG_RE = re.compile(r'<[^>]+>')

# The only entities that show up in the scraped tables
_ENTITIES = (
    ("&nbsp;", " "),
    ("&#39;", "'"),
    ("&gt;", ">"),
    ("&lt;", "<"),
    # Last, so "&amp;lt;" decodes to "&lt;" and not "<"
    ("&amp;", "&"),
)


def strip_markup(html: Optional[str]) -> str:
    """Remove tags, decode the fixed entity set and trim."""
    if not html:
        return ""
    text = _TAG_RE.sub('', html)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    return text.replace('\xa0', ' ').strip()


def flatten_pdf_text(text: Optional[str]) -> str:
    """
    Collapse a PDF text layer into a single line.

    Only existing whitespace is collapsed. Tokens that the layout printed
    back to back (a transaction code glued to a date) stay glued.
    """
    if not text:
        return ""
    text = text.replace('\r', '')
    text = re.sub(r'\n+', ' ', text)
    text = re.sub(r'\s{2,}', ' ', text)
    return text.strip()
