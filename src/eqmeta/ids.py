"""Identifier helpers.

Identifiers are opaque strings of the form ``MID:<class>#<path>?<type>`` with an
optional ``!<field>`` suffix for field identifiers. Every component is
percent-escaped, so encoding is injective and decoding rejects any string that
does not round-trip to itself.
"""

from __future__ import annotations

import re
from urllib.parse import quote, unquote

from eqmeta.errors import MalformedIdentifierError

MID_PREFIX = "MID:"

ARTIFACT_CLASS = "eqmeta.EqualsMetadata"
TYPE_CLASS = "eqmeta.PhysicalTypeIdentifier"
FIELD_CLASS = "eqmeta.FieldIdentifier"

_SAFE = "._$-|/"
_MID_RE = re.compile(
    r"^MID:(?P<cls>[A-Za-z0-9_.]+)#(?P<path>[^#?!]*)\?(?P<type>[^#?!]+)(?:!(?P<field>[^#?!]+))?$"
)


def _escape(component: str) -> str:
    return quote(component, safe=_SAFE)


def _build(id_cls: str, type_name: str, path: str, field_name: str | None = None) -> str:
    if not type_name:
        raise ValueError("type name must be non-empty")
    out = f"{MID_PREFIX}{id_cls}#{_escape(path)}?{_escape(type_name)}"
    if field_name is not None:
        if not field_name:
            raise ValueError("field name must be non-empty")
        out += f"!{_escape(field_name)}"
    return out


def _parse(identifier: str, id_cls: str, *, with_field: bool) -> tuple[str, str, str | None]:
    if not isinstance(identifier, str):
        raise MalformedIdentifierError(repr(identifier), id_cls)
    match = _MID_RE.fullmatch(identifier)
    if match is None or match.group("cls") != id_cls:
        raise MalformedIdentifierError(identifier, id_cls)
    raw_field = match.group("field")
    if with_field != (raw_field is not None):
        raise MalformedIdentifierError(identifier, id_cls)
    type_name = unquote(match.group("type"))
    path = unquote(match.group("path"))
    field_name = unquote(raw_field) if raw_field is not None else None
    # only canonical encodings are accepted
    if _build(id_cls, type_name, path, field_name) != identifier:
        raise MalformedIdentifierError(identifier, id_cls)
    return type_name, path, field_name


def artifact_id(type_name: str, path: str) -> str:
    return _build(ARTIFACT_CLASS, type_name, path)


def decode_artifact_id(identifier: str) -> tuple[str, str]:
    """Return ``(type_name, path)`` for an artifact identifier."""
    type_name, path, _ = _parse(identifier, ARTIFACT_CLASS, with_field=False)
    return type_name, path


def type_id(type_name: str, path: str) -> str:
    return _build(TYPE_CLASS, type_name, path)


def decode_type_id(identifier: str) -> tuple[str, str]:
    type_name, path, _ = _parse(identifier, TYPE_CLASS, with_field=False)
    return type_name, path


def field_id(type_name: str, path: str, field_name: str) -> str:
    return _build(FIELD_CLASS, type_name, path, field_name)


def decode_field_id(identifier: str) -> tuple[str, str, str]:
    """Return ``(type_name, path, field_name)`` for a field identifier."""
    type_name, path, field_name = _parse(identifier, FIELD_CLASS, with_field=True)
    assert field_name is not None
    return type_name, path, field_name


def governor_type_id(artifact_identifier: str) -> str:
    """Identifier of the physical type that governs an artifact."""
    return type_id(*decode_artifact_id(artifact_identifier))


def artifact_id_for_type(type_identifier: str) -> str:
    return artifact_id(*decode_type_id(type_identifier))


def id_class(identifier: str) -> str:
    match = _MID_RE.fullmatch(identifier) if isinstance(identifier, str) else None
    if match is None:
        raise MalformedIdentifierError(str(identifier))
    return match.group("cls")


def is_valid(identifier: str) -> bool:
    try:
        cls = id_class(identifier)
        _parse(identifier, cls, with_field=cls == FIELD_CLASS)
    except MalformedIdentifierError:
        return False
    return True
