#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/utils/__init__.py
"""Utility modules for the epub2txt package.

This package contains helpers for path containment and archive safety,
namespace-tolerant XML access, HTML entity decoding and text post-processing.
"""

from epub2txt.utils.entities import decode_entities, translate_entity
from epub2txt.utils.security import is_within, resolve_contained_path
from epub2txt.utils.text import collapse_whitespace, to_ascii, wrap_paragraph

__all__ = [
    "decode_entities",
    "translate_entity",
    "is_within",
    "resolve_contained_path",
    "collapse_whitespace",
    "to_ascii",
    "wrap_paragraph",
]
