"""Entity decoding and markup stripping for scraped text."""

from __future__ import annotations

import re

NAMED_ENTITIES: dict[str, str] = {
    "amp": "&",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "apos": "'",
    "nbsp": "\u00a0",
    "mdash": "—",
    "ndash": "–",
    "hellip": "…",
    "lsquo": "‘",
    "rsquo": "’",
    "ldquo": "“",
    "rdquo": "”",
    "plusmn": "±",
}

_ENTITY_RE = re.compile(r"&(?:#(\d+)|#[xX]([0-9a-fA-F]+)|([A-Za-z]+));")
_MARKUP_RE = re.compile(r"<!--.*?-->|<[/!?]?[A-Za-z][^<>]*>", re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


def normalize(raw: str) -> str:
    """Decode entities, strip tags and collapse whitespace.

    Each step can expose new work for another (``&lt;b&gt;`` decodes to a
    tag, stripping a tag can join an entity), so the steps repeat until the
    text is stable. That fixed point is what makes the function idempotent.
    """
    text = raw or ""
    while True:
        cleaned = _collapse_whitespace(_strip_markup(_decode_entities(text)))
        if cleaned == text:
            return cleaned
        text = cleaned


def _decode_entities(text: str) -> str:
    return _ENTITY_RE.sub(_replace_entity, text)


def _replace_entity(match: re.Match[str]) -> str:
    decimal, hexadecimal, name = match.groups()
    if name is not None:
        return NAMED_ENTITIES.get(name.lower(), match.group(0))

    code_point = int(decimal) if decimal is not None else int(hexadecimal, 16)
    if not _is_decodable(code_point):
        return match.group(0)
    return chr(code_point)


def _is_decodable(code_point: int) -> bool:
    if code_point <= 0 or code_point > 0x10FFFF:
        return False
    return not 0xD800 <= code_point <= 0xDFFF


def _strip_markup(text: str) -> str:
    return _MARKUP_RE.sub("", text)


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()
