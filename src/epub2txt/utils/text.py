#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/utils/text.py
"""Text post-processing shared by metadata and content output.

Functions
---------
collapse_whitespace : Squeeze runs of whitespace to single spaces
to_ascii : Transliterate text to plain ASCII
wrap_paragraph : Re-flow one paragraph to a column width

Examples
--------
    >>> to_ascii("Café — “quoted”")
    'Cafe -- "quoted"'
    >>> wrap_paragraph("one two three", 8)
    'one two\\nthree'

"""

from __future__ import annotations

import re
import textwrap
import unicodedata

from epub2txt.constants import ASCII_PUNCTUATION_MAP

_WHITESPACE_PATTERN = re.compile(r"\s+")
_PUNCTUATION_TABLE = str.maketrans(ASCII_PUNCTUATION_MAP)


def collapse_whitespace(text: str) -> str:
    """Replace whitespace runs (including newlines) with one space and strip."""
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def to_ascii(text: str) -> str:
    """Transliterate ``text`` to ASCII.

    Typographic punctuation is mapped explicitly, accented letters are
    decomposed (NFKD) and lose their combining marks, and anything left that
    has no ASCII form is dropped.
    """
    text = text.translate(_PUNCTUATION_TABLE)
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def wrap_paragraph(text: str, width: int | None) -> str:
    """Re-flow each line of ``text`` to at most ``width`` columns.

    Hard line breaks already present in ``text`` are kept. Words longer than
    ``width`` are not split. A ``width`` of None returns ``text`` unchanged.
    """
    if not width:
        return text
    return "\n".join(
        textwrap.fill(line, width=width, break_long_words=False, break_on_hyphens=False) if line.strip() else ""
        for line in text.split("\n")
    )
