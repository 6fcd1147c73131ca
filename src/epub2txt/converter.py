#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/converter.py
"""EPUB to plain text conversion pipeline.

One conversion runs entirely inside a ``Sandbox``:

1. the archive is unpacked (``ZipArchiveExtractor``),
2. ``META-INF/container.xml`` names the OPF package document,
3. metadata is read from the OPF when requested,
4. the spine is resolved to content documents in reading order,
5. each document is rendered to the output stream.

The sandbox is released on every exit path, including errors.

Examples
--------
Convert a book to a string:

    >>> from epub2txt import convert
    >>> text = convert("book.epub")  # doctest: +SKIP

Stream to stdout with a metadata header:

    >>> import sys
    >>> from epub2txt import ConversionOptions, EpubConverter
    >>> EpubConverter(ConversionOptions(meta=True)).convert("book.epub", sys.stdout)  # doctest: +SKIP

"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Iterable, Optional, Union

from epub2txt.container import read_rootfile
from epub2txt.exceptions import FileAccessError, MalformedManifestError, RenderError, ValidationError
from epub2txt.exceptions import FileNotFoundError as Epub2TxtFileNotFoundError
from epub2txt.metadata import MetadataRecord, extract_metadata, format_metadata
from epub2txt.options import ConversionOptions
from epub2txt.package import ReadingOrder, resolve_spine
from epub2txt.renderer import XhtmlTextRenderer
from epub2txt.sandbox import Sandbox, ZipArchiveExtractor

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Summary of one EPUB conversion.

    Attributes
    ----------
    rendered : int
        Content documents written to the output
    skipped : int
        Spine entries left out because they could not be resolved
    failed : int
        Content documents that were resolved but could not be rendered
    metadata : list of (str, str)
        Metadata records written, empty unless ``meta`` was requested

    """

    rendered: int = 0
    skipped: int = 0
    failed: int = 0
    metadata: list[MetadataRecord] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """Whether any spine entry was skipped or failed to render."""
        return bool(self.skipped or self.failed)


def write_output(
    paths: Iterable[Path],
    records: Iterable[MetadataRecord],
    options: ConversionOptions,
    renderer: XhtmlTextRenderer,
    stream: IO[str],
) -> int:
    """Write metadata and content documents to ``stream``.

    Parameters
    ----------
    paths : iterable of Path
        Content documents in reading order
    records : iterable of (str, str)
        Metadata records, written as ``Label: text`` lines when ``options.meta``
    options : ConversionOptions
        Controls metadata output, text suppression and section separators
    renderer : XhtmlTextRenderer
        Renders each content document
    stream : IO[str]
        Destination

    Returns
    -------
    int
        Number of documents that failed to render. Each failure is logged
        as a warning and the remaining documents are still written.

    """
    paths = list(paths)

    if options.meta:
        lines = list(format_metadata(records))
        for line in lines:
            stream.write(renderer.format_text(line))
            stream.write("\n")
        if lines and paths and not options.notext:
            stream.write("\n")

    if options.notext:
        return 0

    failed = 0
    for path in paths:
        if options.section_separator is not None:
            stream.write(options.section_separator)
            stream.write("\n")
        try:
            renderer.render_file(path, stream)
        except RenderError as e:
            logger.warning("Error processing spine item %s: %s (continuing)", path.name, e.message)
            failed += 1
    return failed


def validate_epub_path(epub_path: Union[str, Path]) -> Path:
    """Check that ``epub_path`` names a readable regular file.

    Raises
    ------
    FileNotFoundError
        If nothing exists at the path
    FileAccessError
        If the path is not a regular file or is not readable

    """
    path = Path(epub_path)
    if not path.exists():
        raise Epub2TxtFileNotFoundError(file_path=str(path))
    if not path.is_file() or not os.access(path, os.R_OK):
        raise FileAccessError(file_path=str(path))
    return path


class EpubConverter:
    """Convert EPUB archives to plain text.

    Parameters
    ----------
    options : ConversionOptions, optional
        Conversion options, defaults to ``ConversionOptions()``
    renderer : XhtmlTextRenderer, optional
        Content renderer, defaults to one built from ``options``
    temp_base : str or Path, optional
        Directory sandboxes are created in; see ``resolve_temp_base``

    """

    def __init__(
        self,
        options: Optional[ConversionOptions] = None,
        renderer: Optional[XhtmlTextRenderer] = None,
        temp_base: Union[str, Path, None] = None,
    ):
        """Initialize the converter."""
        self.options = options or ConversionOptions()
        self.renderer = renderer or XhtmlTextRenderer(self.options)
        self.temp_base = temp_base

    def _create_sandbox(self) -> Sandbox:
        extractor = ZipArchiveExtractor(
            max_compression_ratio=self.options.max_compression_ratio,
            max_uncompressed_size=self.options.max_uncompressed_size,
            max_entries=self.options.max_entries,
        )
        return Sandbox(base_dir=self.temp_base, extractor=extractor)

    def convert(self, epub_path: Union[str, Path], stream: IO[str]) -> ConversionResult:
        """Convert one EPUB file, writing the text to ``stream``.

        Parameters
        ----------
        epub_path : str or Path
            The EPUB archive
        stream : IO[str]
            Destination for metadata and text

        Returns
        -------
        ConversionResult
            Counts of rendered, skipped and failed documents

        Raises
        ------
        FileNotFoundError, FileAccessError
            If the input is missing or unreadable
        SandboxError
            If the temporary directory cannot be created
        ExtractionError
            If the archive cannot be unpacked safely
        MalformedContainerError
            If ``container.xml`` is missing or names no usable OPF
        PathTraversalError
            If the OPF path escapes the sandbox
        MalformedManifestError
            If the OPF has no usable manifest. Metadata requested with
            ``meta`` has already been written when this is raised.

        """
        archive = validate_epub_path(epub_path)
        result = ConversionResult()

        logger.debug("Converting %s", archive)
        with self._create_sandbox() as sandbox:
            root = sandbox.extract(archive)
            opf_path = read_rootfile(root)
            logger.debug("Content directory is: %s", opf_path.parent)

            try:
                opf_text = opf_path.read_bytes()
            except OSError as e:
                raise MalformedManifestError(
                    f"Cannot read OPF package document: {e.strerror or e}", document="OPF", original_error=e
                ) from e

            if self.options.meta:
                result.metadata = extract_metadata(opf_text, include_calibre=self.options.calibre)

            order = ReadingOrder()
            if not self.options.notext:
                try:
                    order = resolve_spine(opf_text, opf_path)
                except MalformedManifestError:
                    write_output([], result.metadata, self.options, self.renderer, stream)
                    raise

            result.skipped = order.skipped
            result.failed = write_output(order.paths, result.metadata, self.options, self.renderer, stream)
            result.rendered = len(order.paths) - result.failed

        logger.debug(
            "Finished %s: %d rendered, %d skipped, %d failed",
            archive,
            result.rendered,
            result.skipped,
            result.failed,
        )
        return result


def convert(
    epub_path: Union[str, Path],
    options: Optional[ConversionOptions] = None,
    stream: Optional[IO[str]] = None,
    **kwargs: Any,
) -> Union[str, ConversionResult]:
    """Convert an EPUB file to plain text.

    Parameters
    ----------
    epub_path : str or Path
        The EPUB archive
    options : ConversionOptions, optional
        Conversion options
    stream : IO[str], optional
        Destination. When omitted the text is returned as a string.
    **kwargs
        Individual option overrides applied on top of ``options``
        (for example ``meta=True``)

    Returns
    -------
    str or ConversionResult
        The text when ``stream`` is None, otherwise the conversion summary

    Raises
    ------
    ValidationError
        If an option override is unknown or out of range

    Examples
    --------
    >>> convert("book.epub", meta=True, max_line_width=72)  # doctest: +SKIP
    'Title: ...'

    """
    options = options or ConversionOptions()
    if kwargs:
        try:
            options = options.create_updated(**kwargs)
        except TypeError as e:
            raise ValidationError(f"Unknown conversion option: {e}", original_error=e) from e
        except ValueError as e:
            raise ValidationError(str(e), original_error=e) from e

    converter = EpubConverter(options)
    if stream is not None:
        return converter.convert(epub_path, stream)

    buffer = io.StringIO()
    converter.convert(epub_path, buffer)
    return buffer.getvalue()
