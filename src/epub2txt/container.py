#  Copyright (c) 2025 Tom Villani, Ph.D.
#
# src/epub2txt/container.py
"""Resolution of the OPF package document from ``META-INF/container.xml``.

Every EPUB names its package document in the ``full-path`` attribute of a
``rootfile`` element inside ``rootfiles``::

    <container xmlns="urn:oasis:names:tc:opendocument:xmlns:container" version="1.0">
      <rootfiles>
        <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
      </rootfiles>
    </container>

The attribute value is attacker-controlled, so the resolved location is
always checked against the sandbox root before it is read.
"""

from __future__ import annotations

import logging
from pathlib import Path

from epub2txt.constants import ATTR_FULL_PATH, CONTAINER_PATH, TAG_ROOTFILE, TAG_ROOTFILES
from epub2txt.exceptions import MalformedContainerError
from epub2txt.utils.security import resolve_contained_path
from epub2txt.utils.xml_utils import find_descendant, get_attribute, iter_children, parse_xml

logger = logging.getLogger(__name__)


def find_rootfile(container_xml: str | bytes) -> str:
    """Return the OPF path named by ``container.xml``.

    Parameters
    ----------
    container_xml : str or bytes
        Content of ``META-INF/container.xml``

    Returns
    -------
    str
        The first non-empty ``full-path`` of a ``rootfile`` element, relative
        to the archive root

    Raises
    ------
    MalformedContainerError
        If the XML does not parse or no ``rootfiles``/``rootfile``/``full-path``
        chain is present

    """
    root = parse_xml(container_xml, document=CONTAINER_PATH, error_class=MalformedContainerError)

    rootfiles = find_descendant(root, TAG_ROOTFILES)
    if rootfiles is None:
        raise MalformedContainerError(f"{CONTAINER_PATH} has no rootfiles element", document=CONTAINER_PATH)

    for rootfile in iter_children(rootfiles, TAG_ROOTFILE):
        full_path = get_attribute(rootfile, ATTR_FULL_PATH)
        if full_path and full_path.strip():
            return full_path.strip()

    raise MalformedContainerError(
        f"{CONTAINER_PATH} does not specify a root file via full-path attribute", document=CONTAINER_PATH
    )


def read_rootfile(sandbox_root: str | Path) -> Path:
    """Locate the package document inside an extracted EPUB.

    Parameters
    ----------
    sandbox_root : str or Path
        Directory the archive was extracted into

    Returns
    -------
    Path
        Canonical path of the OPF file, guaranteed to lie inside ``sandbox_root``

    Raises
    ------
    MalformedContainerError
        If ``container.xml`` is missing or unusable, or the OPF it names does
        not exist
    PathTraversalError
        If the OPF path resolves outside the sandbox

    """
    container_path = Path(sandbox_root) / CONTAINER_PATH
    try:
        container_xml = container_path.read_bytes()
    except OSError as e:
        raise MalformedContainerError(
            f"Cannot read {CONTAINER_PATH}: {e.strerror or e}", document=CONTAINER_PATH, original_error=e
        ) from e

    logger.debug("Read %s, size %d", CONTAINER_PATH, len(container_xml))
    relative_opf = find_rootfile(container_xml)
    logger.debug("OPF rootfile relative path from %s: %s", CONTAINER_PATH, relative_opf)

    opf_path = resolve_contained_path(relative_opf, sandbox_root)
    if not opf_path.is_file():
        raise MalformedContainerError(
            f"Bad OPF rootfile {relative_opf!r}: no such file in the archive", document=CONTAINER_PATH
        )

    logger.debug("Canonical OPF path: %s", opf_path)
    return opf_path
