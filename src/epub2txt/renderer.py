#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/renderer.py
"""Plain text rendering of XHTML content documents.

The renderer walks a BeautifulSoup tree and produces paragraphs of plain
text. All formatting is stripped; block-level elements become paragraph
breaks, ``<br>`` becomes a line break and ``<pre>`` content keeps its
original whitespace. Optionally paragraphs are re-flowed to a fixed width
and the result is transliterated to ASCII.
"""

from __future__ import annotations

import logging
import re
import warnings
from pathlib import Path
from typing import IO, Union

from bs4 import BeautifulSoup, CData, NavigableString, ParserRejectedMarkup, Tag, XMLParsedAsHTMLWarning

from epub2txt.constants import BLOCK_ELEMENTS, SKIPPED_ELEMENTS
from epub2txt.exceptions import RenderError
from epub2txt.options import ConversionOptions
from epub2txt.utils.text import collapse_whitespace, to_ascii, wrap_paragraph

logger = logging.getLogger(__name__)

_CELL_ELEMENTS = frozenset({"td", "th"})
_SOURCE_WHITESPACE = re.compile(r"\s+")


class XhtmlTextRenderer:
    """Convert XHTML documents to plain text.

    Parameters
    ----------
    options : ConversionOptions or None
        Conversion options; ``max_line_width`` and ``ascii_only`` apply here

    Examples
    --------
    >>> renderer = XhtmlTextRenderer()
    >>> renderer.render_to_string("<html><body><h1>One</h1><p>Two <b>three</b></p></body></html>")
    'One\\n\\nTwo three'

    """

    def __init__(self, options: ConversionOptions | None = None):
        """Initialize the renderer with options."""
        self.options = options or ConversionOptions()
        self._blocks: list[tuple[str, bool]] = []
        self._inline: list[str] = []

    def format_text(self, text: str) -> str:
        """Apply width re-flow and ASCII folding to already-plain text."""
        text = wrap_paragraph(text, self.options.max_line_width)
        return to_ascii(text) if self.options.ascii_only else text

    def render_to_string(self, markup: Union[str, bytes]) -> str:
        """Render XHTML markup to plain text.

        Parameters
        ----------
        markup : str or bytes
            The document. Bytes are decoded using the document's own
            declaration, falling back to encoding detection.

        Returns
        -------
        str
            Paragraphs separated by blank lines, without trailing newline

        Raises
        ------
        RenderError
            If the markup is rejected by the parser or nests too deeply

        """
        try:
            with warnings.catch_warnings():
                # XHTML content documents are expected here
                warnings.simplefilter("ignore", XMLParsedAsHTMLWarning)
                soup = BeautifulSoup(markup, "html.parser")
        except ParserRejectedMarkup as e:
            raise RenderError(f"Markup rejected by parser: {e}", original_error=e) from e
        except RecursionError as e:
            raise RenderError("Document nesting is too deep to parse", original_error=e) from e

        self._blocks = []
        self._inline = []
        body = soup.body if soup.body is not None else soup
        try:
            self._walk(body, in_pre=False)
        except RecursionError as e:
            raise RenderError("Document nesting is too deep to render", original_error=e) from e
        self._flush()

        paragraphs = [
            text if preformatted else wrap_paragraph(text, self.options.max_line_width)
            for text, preformatted in self._blocks
        ]
        result = "\n\n".join(paragraphs)
        return to_ascii(result) if self.options.ascii_only else result

    def render_file(self, path: Union[str, Path], stream: IO[str]) -> None:
        """Render one content document and write it to ``stream``.

        Raises
        ------
        RenderError
            If the file cannot be read or rendered

        """
        try:
            markup = Path(path).read_bytes()
        except OSError as e:
            raise RenderError(f"Cannot read {path}: {e.strerror or e}", file_path=str(path), original_error=e) from e

        try:
            text = self.render_to_string(markup)
        except RenderError as e:
            e.file_path = str(path)
            raise

        logger.debug("Rendered %s (%d characters)", path, len(text))
        if text:
            stream.write(text)
            stream.write("\n\n")

    def _walk(self, node: Tag, in_pre: bool) -> None:
        for child in node.children:
            if isinstance(child, NavigableString):
                # Comments, doctypes and processing instructions are NavigableString subclasses
                if type(child) is NavigableString or isinstance(child, CData):
                    text = str(child)
                    self._inline.append(text if in_pre else _SOURCE_WHITESPACE.sub(" ", text))
                continue
            if not isinstance(child, Tag):
                continue

            name = (child.name or "").lower()
            if name in SKIPPED_ELEMENTS:
                continue
            if name == "br":
                self._inline.append("\n")
            elif name == "hr":
                self._flush()
            elif name == "pre":
                self._flush()
                self._walk(child, in_pre=True)
                self._flush(preformatted=True)
            elif name in BLOCK_ELEMENTS:
                self._flush(preformatted=in_pre)
                self._walk(child, in_pre)
                self._flush(preformatted=in_pre)
            elif name in _CELL_ELEMENTS:
                self._walk(child, in_pre)
                self._inline.append(" ")
            else:
                self._walk(child, in_pre)

    def _flush(self, preformatted: bool = False) -> None:
        text = "".join(self._inline)
        self._inline = []

        if preformatted:
            text = text.strip("\n")
            if text.strip():
                self._blocks.append((text.rstrip(), True))
            return

        lines = [collapse_whitespace(line) for line in text.split("\n")]
        while lines and not lines[0]:
            lines.pop(0)
        while lines and not lines[-1]:
            lines.pop()
        if lines:
            self._blocks.append(("\n".join(lines), False))
