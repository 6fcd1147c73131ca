#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Constants and default values for the epub2txt library.

This module centralizes hardcoded values and default configuration used
across the package.

Constants are organized by category:
1. Sandbox - temporary directory naming and environment overrides
2. EPUB Structure - well-known paths, tag and attribute names
3. Metadata - Dublin Core and Calibre field labels
4. Security Constants - archive limits
5. Rendering - block elements and punctuation folding
6. CLI - environment prefix and exit codes
"""

from __future__ import annotations

# =============================================================================
# Sandbox
# =============================================================================

SANDBOX_PREFIX = "epub2txt"

# Checked in order, first non-empty value wins; falls back to tempfile.gettempdir()
TEMP_BASE_ENV_VARS = ("EPUB2TXT_TMPDIR", "TMPDIR", "TMP", "TEMP")

# Permissions applied after extraction: owner rw(x), group/other r(x), nobody else writes
SANDBOX_DIR_MODE = 0o755
SANDBOX_FILE_MODE = 0o644

# =============================================================================
# EPUB Structure
# =============================================================================

CONTAINER_PATH = "META-INF/container.xml"

TAG_ROOTFILES = "rootfiles"
TAG_ROOTFILE = "rootfile"
TAG_MANIFEST = "manifest"
TAG_ITEM = "item"
TAG_SPINE = "spine"
TAG_ITEMREF = "itemref"
TAG_METADATA = "metadata"
TAG_META = "meta"

ATTR_FULL_PATH = "full-path"
ATTR_ID = "id"
ATTR_HREF = "href"
ATTR_MEDIA_TYPE = "media-type"
ATTR_IDREF = "idref"
ATTR_LINEAR = "linear"

# =============================================================================
# Metadata
# =============================================================================

# Local tag name -> output label, for direct children of <metadata>
DUBLIN_CORE_LABELS = {
    "creator": "Creator",
    "publisher": "Publisher",
    "contributor": "Contributor",
    "identifier": "Identifier",
    "date": "Date",
    "description": "Description",
    "subject": "Subject",
    "language": "Language",
    "title": "Title",
}

CALIBRE_SERIES = "calibre:series"
CALIBRE_SERIES_INDEX = "calibre:series_index"
CALIBRE_TITLE_SORT = "calibre:title_sort"

CALIBRE_LABELS = {
    CALIBRE_SERIES: "Calibre series",
    CALIBRE_SERIES_INDEX: "Calibre series index",
    CALIBRE_TITLE_SORT: "Calibre title sort",
}

# =============================================================================
# Security Constants
# =============================================================================

DEFAULT_MAX_COMPRESSION_RATIO = 100.0  # Maximum compression ratio (uncompressed/compressed)
DEFAULT_MAX_UNCOMPRESSED_SIZE = 1024 * 1024 * 1024  # 1GB maximum uncompressed size
DEFAULT_MAX_ZIP_ENTRIES = 10000  # Maximum number of entries in a ZIP archive

# =============================================================================
# Rendering
# =============================================================================

SKIPPED_ELEMENTS = frozenset({"script", "style", "head", "title", "noscript", "template"})

BLOCK_ELEMENTS = frozenset(
    {
        "address",
        "article",
        "aside",
        "blockquote",
        "caption",
        "dd",
        "div",
        "dl",
        "dt",
        "figcaption",
        "figure",
        "footer",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "li",
        "main",
        "nav",
        "ol",
        "p",
        "section",
        "table",
        "tr",
        "ul",
    }
)

# Typographic characters that NFKD does not fold to ASCII
ASCII_PUNCTUATION_MAP = {
    "‘": "'",
    "’": "'",
    "‚": "'",
    "“": '"',
    "”": '"',
    "„": '"',
    "–": "-",
    "—": "--",
    "…": "...",
    " ": " ",
    "«": "<<",
    "»": ">>",
    "•": "*",
}

# =============================================================================
# CLI
# =============================================================================

ENV_PREFIX = "EPUB2TXT_"

EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE_ERROR = 2
EXIT_VALIDATION_ERROR = 3
EXIT_FILE_ERROR = 4
EXIT_EXTRACTION_ERROR = 5
EXIT_STRUCTURE_ERROR = 6
EXIT_PARTIAL = 7
EXIT_SECURITY_ERROR = 8
