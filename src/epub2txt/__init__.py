"""epub2txt - Extract plain text and metadata from EPUB e-books.

An EPUB is a ZIP archive. ``META-INF/container.xml`` names the OPF package
document, whose manifest lists every file and whose spine gives the reading
order of the XHTML content documents. epub2txt unpacks the archive into a
private temporary directory, follows that chain, and renders each content
document as plain text.

Archives are treated as untrusted input: entry names, the OPF path and
every spine item are checked to stay inside the extraction directory, and
archive size, entry count and compression ratio are limited.

Key Features
------------
- Reading order from the OPF spine, tolerant of broken individual entries
- Dublin Core metadata header, optionally with Calibre series fields
- Optional paragraph re-flow and ASCII transliteration
- Hardened XML parsing via defusedxml

Requirements
------------
- Python 3.10+
- beautifulsoup4, defusedxml

Examples
--------
Convert a book to a string:

    >>> from epub2txt import convert
    >>> text = convert("book.epub")

Metadata only:

    >>> print(convert("book.epub", meta=True, notext=True))
    Title: Moby-Dick
    Creator: Herman Melville

"""

#  Copyright (c) 2025 Tom Villani, Ph.D.

import sys

if sys.version_info < (3, 10):
    raise ImportError(
        "epub2txt requires Python 3.10 or later. "
        f"You are using Python {sys.version_info.major}.{sys.version_info.minor}."
    )

__version__ = "1.0.0"

from epub2txt.converter import ConversionResult, EpubConverter, convert, write_output  # noqa: E402
from epub2txt.exceptions import (  # noqa: E402
    Epub2TxtError,
    ExtractionError,
    FileError,
    MalformedContainerError,
    MalformedManifestError,
    PathTraversalError,
    RenderError,
    SecurityError,
    StructureError,
    ValidationError,
)
from epub2txt.metadata import extract_metadata, format_metadata  # noqa: E402
from epub2txt.options import ConversionOptions  # noqa: E402
from epub2txt.package import resolve_reading_order  # noqa: E402
from epub2txt.sandbox import Sandbox  # noqa: E402

__all__ = [
    "__version__",
    "convert",
    "ConversionOptions",
    "ConversionResult",
    "EpubConverter",
    "write_output",
    "extract_metadata",
    "format_metadata",
    "resolve_reading_order",
    "Sandbox",
    "Epub2TxtError",
    "ExtractionError",
    "FileError",
    "MalformedContainerError",
    "MalformedManifestError",
    "PathTraversalError",
    "RenderError",
    "SecurityError",
    "StructureError",
    "ValidationError",
]
