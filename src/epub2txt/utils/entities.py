#  Copyright (c) 2025 Tom Villani, Ph.D.
"""HTML entity decoding for metadata text.

OPF metadata frequently carries HTML-escaped text (descriptions copied from
web pages, ``&amp;`` in author names). ``decode_entities`` turns the named
and numeric character references back into characters and leaves anything
it does not recognise untouched.
"""

from __future__ import annotations

from html.entities import html5, name2codepoint

_MAX_CODEPOINT = 0x10FFFF


def _translate_numeric(body: str) -> str | None:
    if body[:1] in ("x", "X"):
        digits, base = body[1:], 16
    else:
        digits, base = body, 10
    if not digits:
        return None
    try:
        codepoint = int(digits, base)
    except ValueError:
        return None
    # Surrogates and NUL are not characters
    if codepoint == 0 or codepoint > _MAX_CODEPOINT or 0xD800 <= codepoint <= 0xDFFF:
        return None
    return chr(codepoint)


def translate_entity(name: str) -> str:
    """Translate the body of one character reference.

    Parameters
    ----------
    name : str
        The text between ``&`` and ``;``, e.g. ``"amp"``, ``"#233"`` or ``"#xE9"``

    Returns
    -------
    str
        The represented character(s), or the literal ``&name;`` when the
        reference is unknown or invalid

    Examples
    --------
    >>> translate_entity("amp")
    '&'
    >>> translate_entity("#x41")
    'A'
    >>> translate_entity("bogus")
    '&bogus;'

    """
    if name.startswith("#"):
        translated = _translate_numeric(name[1:])
    elif f"{name};" in html5:
        translated = html5[f"{name};"]
    elif name in name2codepoint:
        translated = chr(name2codepoint[name])
    else:
        translated = None
    return translated if translated is not None else f"&{name};"


def decode_entities(text: str) -> str:
    """Decode HTML character references in ``text``.

    The scanner has two modes. In normal mode characters are copied; ``&``
    switches to entity mode, where characters accumulate until ``;``
    triggers translation of the accumulated name. An entity still open at the
    end of the input is emitted literally, ``&`` included. Decoding never
    fails: unknown names come back as their original ``&name;`` text.

    Parameters
    ----------
    text : str
        Text that may contain character references

    Returns
    -------
    str
        Decoded text

    Examples
    --------
    >>> decode_entities("A &amp; B")
    'A & B'
    >>> decode_entities("&amp")
    '&amp'
    >>> decode_entities("caf&#233;")
    'café'

    """
    if "&" not in text:
        return text

    out: list[str] = []
    entity: list[str] | None = None

    for ch in text:
        if entity is None:
            if ch == "&":
                entity = []
            else:
                out.append(ch)
        elif ch == ";":
            out.append(translate_entity("".join(entity)))
            entity = None
        else:
            entity.append(ch)

    if entity is not None:
        out.append("&")
        out.extend(entity)

    return "".join(out)
