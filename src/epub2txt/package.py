#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/package.py
"""OPF package document: manifest index and spine reading order.

The manifest declares every file of the publication keyed by id; the spine
lists manifest ids in reading order. ``resolve_reading_order`` joins the two
and turns each spine entry into a canonical path inside the content root
(the directory holding the OPF file).

Problems with individual spine entries are logged and the entry is skipped,
so one bad reference never costs the rest of the book.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote
from xml.etree.ElementTree import Element

from epub2txt.constants import (
    ATTR_HREF,
    ATTR_ID,
    ATTR_IDREF,
    ATTR_LINEAR,
    ATTR_MEDIA_TYPE,
    TAG_ITEM,
    TAG_ITEMREF,
    TAG_MANIFEST,
    TAG_SPINE,
)
from epub2txt.exceptions import MalformedManifestError, PathTraversalError
from epub2txt.utils.security import resolve_contained_path
from epub2txt.utils.xml_utils import find_child, get_attribute, iter_children, parse_xml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManifestItem:
    """One ``<item>`` of the OPF manifest.

    Parameters
    ----------
    id : str
        Unique identifier referenced by spine ``idref`` attributes
    href : str
        URL-encoded location relative to the OPF file
    media_type : str
        Declared MIME type, empty if absent

    """

    id: str
    href: str
    media_type: str = ""

    @property
    def relative_path(self) -> str:
        """The href as a filesystem-relative path (percent-decoded, no fragment)."""
        return unquote(self.href.split("#", 1)[0])


@dataclass(frozen=True)
class SpineEntry:
    """One ``<itemref>`` of the OPF spine."""

    idref: str
    linear: bool = True


def build_manifest(package: Element) -> dict[str, ManifestItem]:
    """Index the manifest items of a parsed OPF document by id.

    Items without an ``id`` or ``href`` cannot be referenced and are ignored.
    When an id is declared twice the first declaration wins.

    Raises
    ------
    MalformedManifestError
        If there is no manifest element, or it has no children

    """
    manifest = find_child(package, TAG_MANIFEST)
    if manifest is None or len(manifest) == 0:
        raise MalformedManifestError("OPF document has no valid manifest or manifest children", document="OPF")

    items: dict[str, ManifestItem] = {}
    for node in iter_children(manifest, TAG_ITEM):
        item_id = get_attribute(node, ATTR_ID)
        href = get_attribute(node, ATTR_HREF)
        if not item_id or not href:
            logger.debug("Ignoring manifest item without id or href: %s", dict(node.attrib))
            continue
        if item_id in items:
            logger.debug("Duplicate manifest id %r, keeping first declaration", item_id)
            continue
        items[item_id] = ManifestItem(id=item_id, href=href, media_type=get_attribute(node, ATTR_MEDIA_TYPE) or "")
    return items


def read_spine(package: Element) -> list[SpineEntry]:
    """Return the spine entries of a parsed OPF document in reading order.

    A missing spine yields an empty list. Itemrefs lacking an ``idref`` are
    kept with an empty idref so that they are reported when resolved.
    """
    spine = find_child(package, TAG_SPINE)
    if spine is None:
        return []
    return [
        SpineEntry(
            idref=get_attribute(node, ATTR_IDREF) or "",
            linear=(get_attribute(node, ATTR_LINEAR) or "").strip().lower() != "no",
        )
        for node in iter_children(spine, TAG_ITEMREF)
    ]


@dataclass
class ReadingOrder:
    """Resolved spine of one publication.

    Attributes
    ----------
    paths : list of Path
        Canonical content document paths in reading order
    skipped : int
        Number of spine entries that could not be resolved

    """

    paths: list[Path] = field(default_factory=list)
    skipped: int = 0


def resolve_spine(opf_text: str | bytes, opf_path: str | Path) -> ReadingOrder:
    """Resolve the spine of an OPF document, counting the entries left out.

    See ``resolve_reading_order`` for the resolution rules.

    Raises
    ------
    MalformedManifestError
        If the OPF does not parse or has no usable manifest

    """
    package = parse_xml(opf_text, document="OPF package document", error_class=MalformedManifestError)
    manifest = build_manifest(package)
    spine = read_spine(package)
    content_root = Path(opf_path).parent

    logger.debug("EPUB spine has %d items, manifest has %d", len(spine), len(manifest))

    order = ReadingOrder()
    for position, entry in enumerate(spine, start=1):
        if not entry.idref:
            logger.warning("Skipping EPUB spine item %d: itemref has no idref", position)
            order.skipped += 1
            continue

        item = manifest.get(entry.idref)
        if item is None:
            logger.warning("Skipping EPUB spine item %r: idref not found in manifest", entry.idref)
            order.skipped += 1
            continue

        relative = item.relative_path
        try:
            resolved = resolve_contained_path(relative, content_root)
        except PathTraversalError as e:
            logger.warning("Skipping EPUB spine item %r: %s", relative, e.message)
            order.skipped += 1
            continue

        if not resolved.is_file():
            logger.warning("Skipping EPUB spine item %r: no such file in the archive", relative)
            order.skipped += 1
            continue

        order.paths.append(resolved)

    if not order.paths:
        logger.warning("EPUB spine resolved to no readable content documents")

    return order


def resolve_reading_order(opf_text: str | bytes, opf_path: str | Path) -> list[Path]:
    """Resolve the spine of an OPF document to content file paths.

    Parameters
    ----------
    opf_text : str or bytes
        Content of the OPF package document
    opf_path : str or Path
        Canonical location of the OPF file; its directory is the content
        root every spine item must stay inside

    Returns
    -------
    list of Path
        Canonical paths of the content documents in spine order. Entries whose
        idref is unknown or whose path is unsafe or missing are left out,
        with one warning each.

    Raises
    ------
    MalformedManifestError
        If the OPF does not parse or has no usable manifest

    Examples
    --------
    >>> resolve_reading_order(opf_bytes, "/tmp/sandbox/OEBPS/content.opf")  # doctest: +SKIP
    [PosixPath('/tmp/sandbox/OEBPS/c2.xhtml'), PosixPath('/tmp/sandbox/OEBPS/c1.xhtml')]

    """
    return resolve_spine(opf_text, opf_path).paths
