#  Copyright (c) 2025 Tom Villani, Ph.D.
"""XML helpers for reading EPUB descriptors.

Parsing goes through ``defusedxml`` so that hostile descriptors (entity
expansion bombs, external entities) are rejected instead of expanded.
Element matching is done on local names, which makes every lookup tolerant
of namespace URIs (``{http://www.idpf.org/2007/opf}manifest``) and of raw
prefixes (``opf:manifest``).

Descriptors that use a prefix they never declare (``<ocf:rootfiles>``
without ``xmlns:ocf``) are rejected by a namespace-aware parser. They are
parsed a second time without namespace processing, keeping the prefixes in
the tag names.
"""

from __future__ import annotations

import re
from html.entities import name2codepoint
from typing import Iterator, Optional
from xml.dom import Node
from xml.etree.ElementTree import Element, SubElement
from xml.parsers.expat import ExpatError
from xml.parsers.expat import errors as expat_errors

import defusedxml.ElementTree as ET
from defusedxml import DefusedXmlException, expatbuilder

from epub2txt.exceptions import StructureError

# Entities XML defines itself; anything else is an HTML-ism expat rejects
_XML_PREDEFINED_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})
_NAMED_ENTITY_PATTERN = re.compile(rb"&([A-Za-z][A-Za-z0-9]*);")
_UNBOUND_PREFIX = expat_errors.codes[expat_errors.XML_ERROR_UNBOUND_PREFIX]


def local_name(tag: str) -> str:
    """Return the local part of an element or attribute name.

    Examples
    --------
    >>> local_name("{http://www.idpf.org/2007/opf}manifest")
    'manifest'
    >>> local_name("opf:manifest")
    'manifest'
    >>> local_name("manifest")
    'manifest'

    """
    if not isinstance(tag, str):
        # Comments and processing instructions carry a callable tag
        return ""
    if "}" in tag:
        tag = tag.split("}", 1)[1]
    if ":" in tag:
        tag = tag.rsplit(":", 1)[1]
    return tag


def _replace_html_entity(match: re.Match[bytes]) -> bytes:
    name = match.group(1).decode("ascii")
    if name in _XML_PREDEFINED_ENTITIES or name not in name2codepoint:
        return match.group(0)
    return f"&#{name2codepoint[name]};".encode("ascii")


def _neutralize_html_entities(data: bytes) -> bytes:
    """Rewrite HTML named entities (``&eacute;``) as numeric references."""
    return _NAMED_ENTITY_PATTERN.sub(_replace_html_entity, data)


def _dom_attributes(node) -> dict[str, str]:
    return {name: value for name, value in node.attributes.items() if not name.startswith("xmlns")}


def _dom_to_element(document) -> Element:
    """Convert a minidom document into an ElementTree element, without recursion."""
    top = document.documentElement
    root = Element(top.tagName, _dom_attributes(top))
    pending = [(top, root)]
    while pending:
        node, element = pending.pop()
        last = None
        for child in node.childNodes:
            if child.nodeType == Node.ELEMENT_NODE:
                last = SubElement(element, child.tagName, _dom_attributes(child))
                pending.append((child, last))
            elif child.nodeType in (Node.TEXT_NODE, Node.CDATA_SECTION_NODE):
                if last is None:
                    element.text = (element.text or "") + child.data
                else:
                    last.tail = (last.tail or "") + child.data
    return root


def _parse_without_namespaces(raw: bytes, document: str, error_class: type[StructureError]) -> Element:
    try:
        dom = expatbuilder.parseString(raw, namespaces=False)
    except ExpatError as e:
        raise error_class(f"Cannot parse {document}: {e}", document=document, original_error=e) from e
    except DefusedXmlException as e:
        raise error_class(f"Refusing unsafe XML in {document}: {e}", document=document, original_error=e) from e
    try:
        return _dom_to_element(dom)
    finally:
        dom.unlink()


def parse_xml(
    data: str | bytes,
    document: str = "XML document",
    error_class: type[StructureError] = StructureError,
    keep_references: bool = False,
) -> Element:
    """Parse an XML descriptor into an element tree.

    Parameters
    ----------
    data : str or bytes
        Raw descriptor content. Bytes are preferred so that the XML
        declaration's encoding is honoured.
    document : str
        Name of the descriptor, used in error messages
    error_class : type of StructureError
        Exception raised on failure
    keep_references : bool, default False
        Leave character and entity references undecoded in text and
        attribute values (``&amp;`` stays ``&amp;``), for callers that run
        their own entity decoding

    Returns
    -------
    Element
        The root element

    Raises
    ------
    StructureError
        (or the given subclass) if the content is not well-formed XML or
        uses forbidden constructs such as entity declarations

    """
    raw = data.encode("utf-8") if isinstance(data, str) else data
    if not raw.strip():
        raise error_class(f"{document} is empty", document=document)

    if keep_references:
        raw = raw.replace(b"&", b"&amp;")
    else:
        raw = _neutralize_html_entities(raw)
    try:
        return ET.fromstring(raw)
    except ET.ParseError as e:
        if e.code == _UNBOUND_PREFIX:
            return _parse_without_namespaces(raw, document, error_class)
        raise error_class(f"Cannot parse {document}: {e}", document=document, original_error=e) from e
    except DefusedXmlException as e:
        raise error_class(f"Refusing unsafe XML in {document}: {e}", document=document, original_error=e) from e


def iter_children(element: Element, name: str) -> Iterator[Element]:
    """Yield direct children of ``element`` whose local name is ``name``."""
    for child in element:
        if local_name(child.tag) == name:
            yield child


def find_child(element: Element, name: str) -> Optional[Element]:
    """Return the first direct child with local name ``name``, or None."""
    return next(iter_children(element, name), None)


def find_descendant(element: Element, name: str) -> Optional[Element]:
    """Return ``element`` itself or the first descendant with local name ``name``."""
    for node in element.iter():
        if local_name(node.tag) == name:
            return node
    return None


def get_attribute(element: Element, name: str) -> Optional[str]:
    """Return an attribute value by local name, ignoring any namespace.

    An unqualified attribute wins over a namespaced one with the same local
    name.
    """
    if name in element.attrib:
        return element.attrib[name]
    for key, value in element.attrib.items():
        if local_name(key) == name:
            return value
    return None


def element_text(element: Element) -> str:
    """Return the concatenated text content of ``element``, stripped."""
    return "".join(element.itertext()).strip()
