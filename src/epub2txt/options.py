#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Configuration options for EPUB to plain text conversion.

The options object is immutable and shared by every stage of a conversion:
archive extraction, metadata output and content rendering.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, replace
from typing import Any

if sys.version_info >= (3, 11):
    from typing import Self
else:
    from typing_extensions import Self

from epub2txt.constants import (
    DEFAULT_MAX_COMPRESSION_RATIO,
    DEFAULT_MAX_UNCOMPRESSED_SIZE,
    DEFAULT_MAX_ZIP_ENTRIES,
)


@dataclass(frozen=True)
class CloneFrozenMixin:
    """Mixin providing frozen dataclass cloning capabilities."""

    def create_updated(self, **kwargs: Any) -> Self:
        """Create a new instance with updated field values.

        Parameters
        ----------
        **kwargs : Any
            Field names and their new values

        Returns
        -------
        Self
            New instance with specified fields updated

        """
        return replace(self, **kwargs)


@dataclass(frozen=True)
class ConversionOptions(CloneFrozenMixin):
    """Configuration options for EPUB-to-text conversion.

    Parameters
    ----------
    meta : bool, default False
        Write a bibliographic metadata header (``Label: value`` lines) before
        the content.
    notext : bool, default False
        Suppress content text; combined with ``meta`` this prints metadata only.
    calibre : bool, default False
        Include Calibre vendor metadata (series, series index, title sort).
    section_separator : str or None, default None
        Literal line written before each content document.
    max_line_width : int or None, default None
        Re-flow paragraphs to this width. None leaves lines unwrapped.
    ascii_only : bool, default False
        Transliterate output to ASCII.
    max_uncompressed_size : int
        Maximum total uncompressed size of the archive, in bytes.
    max_compression_ratio : float
        Maximum allowed compression ratio (uncompressed/compressed).
    max_entries : int
        Maximum number of entries in the archive.

    """

    meta: bool = field(
        default=False,
        metadata={"help": "Include bibliographic metadata before the text"},
    )
    notext: bool = field(
        default=False,
        metadata={"help": "Do not output the content text (useful with --meta)"},
    )
    calibre: bool = field(
        default=False,
        metadata={"help": "Include Calibre series and title-sort metadata"},
    )
    section_separator: str | None = field(
        default=None,
        metadata={"help": "Line printed before each content document"},
    )
    max_line_width: int | None = field(
        default=None,
        metadata={"help": "Re-flow paragraphs to this many columns"},
    )
    ascii_only: bool = field(
        default=False,
        metadata={"help": "Transliterate output to ASCII"},
    )
    max_uncompressed_size: int = field(
        default=DEFAULT_MAX_UNCOMPRESSED_SIZE,
        metadata={"help": "Maximum total uncompressed archive size in bytes"},
    )
    max_compression_ratio: float = field(
        default=DEFAULT_MAX_COMPRESSION_RATIO,
        metadata={"help": "Maximum archive compression ratio"},
    )
    max_entries: int = field(
        default=DEFAULT_MAX_ZIP_ENTRIES,
        metadata={"help": "Maximum number of archive entries"},
    )

    def __post_init__(self) -> None:
        """Validate numeric ranges.

        Raises
        ------
        ValueError
            If any field value is outside its valid range.

        """
        if self.max_line_width is not None and self.max_line_width <= 0:
            raise ValueError(f"max_line_width must be positive, got {self.max_line_width}")
        if self.max_uncompressed_size <= 0:
            raise ValueError(f"max_uncompressed_size must be positive, got {self.max_uncompressed_size}")
        if self.max_compression_ratio <= 0:
            raise ValueError(f"max_compression_ratio must be positive, got {self.max_compression_ratio}")
        if self.max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {self.max_entries}")
        if self.section_separator is not None and "\n" in self.section_separator:
            raise ValueError("section_separator must be a single line")
