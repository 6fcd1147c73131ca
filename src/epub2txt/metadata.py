#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/metadata.py
"""Bibliographic metadata extraction from the OPF ``<metadata>`` element.

Produces ``(label, text)`` records in document order, for example::

    [("Title", "Moby-Dick"), ("Creator", "Herman Melville"), ("Date", "1851")]

Extraction is best-effort: an OPF that cannot be parsed, or that has no
metadata element, simply yields no records.

Character references are decoded once, by ``decode_entities``; the XML
parser is told to leave them alone, so ``&amp;lt;`` reads as ``&lt;``.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Optional
from xml.etree.ElementTree import Element

from epub2txt.constants import (
    CALIBRE_LABELS,
    CALIBRE_SERIES_INDEX,
    DUBLIN_CORE_LABELS,
    TAG_META,
    TAG_METADATA,
)
from epub2txt.exceptions import StructureError
from epub2txt.utils.entities import decode_entities
from epub2txt.utils.xml_utils import element_text, find_child, get_attribute, local_name, parse_xml

logger = logging.getLogger(__name__)

MetadataRecord = tuple[str, str]


def _calibre_record(node: Element) -> Optional[MetadataRecord]:
    name = get_attribute(node, "name") or get_attribute(node, "property")
    if name is None:
        return None
    label = CALIBRE_LABELS.get(name.strip())
    if label is None:
        return None

    content = get_attribute(node, "content")
    if content is None:
        # EPUB 3 style: <meta property="calibre:series">Name</meta>
        content = element_text(node)
    if not content:
        return None

    if name.strip() == CALIBRE_SERIES_INDEX:
        content = content.split(".", 1)[0]
    return label, decode_entities(content)


def _metadata_records(metadata: Element, include_calibre: bool) -> Iterator[MetadataRecord]:
    for node in metadata:
        tag = local_name(node.tag)

        label = DUBLIN_CORE_LABELS.get(tag)
        if label is not None:
            text = element_text(node)
            if not text:
                continue
            if tag == "date":
                text = text.split("-", 1)[0]
            yield label, decode_entities(text)
        elif tag == TAG_META and include_calibre:
            record = _calibre_record(node)
            if record is not None:
                yield record


def extract_metadata(opf_text: str | bytes, include_calibre: bool = False) -> list[MetadataRecord]:
    """Extract labelled metadata fields from an OPF document.

    Parameters
    ----------
    opf_text : str or bytes
        Content of the OPF package document
    include_calibre : bool, default False
        Also report Calibre ``<meta>`` fields (series, series index, title sort)

    Returns
    -------
    list of (str, str)
        ``(label, decoded_text)`` pairs in document order. Empty when the OPF
        cannot be parsed or has no metadata.

    Examples
    --------
    >>> extract_metadata(b'''<package xmlns:dc="http://purl.org/dc/elements/1.1/">
    ...   <metadata><dc:date>2019-05-01</dc:date></metadata></package>''')
    [('Date', '2019')]

    """
    try:
        package = parse_xml(opf_text, document="OPF package document", keep_references=True)
    except StructureError as e:
        logger.debug("No metadata extracted: %s", e.message)
        return []

    metadata = find_child(package, TAG_METADATA)
    if metadata is None:
        logger.debug("OPF document has no metadata element")
        return []

    return list(_metadata_records(metadata, include_calibre))


def format_metadata(records: Iterable[MetadataRecord]) -> Iterator[str]:
    """Yield one ``"Label: text"`` line per record."""
    for label, text in records:
        yield f"{label}: {text}"
