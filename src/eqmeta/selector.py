"""Equality field selection policy.

Pure functions: given a type's declared fields and the persistence hints,
decide which fields take part in equals/hashCode. Nothing here touches the
dependency registry; the provider records edges for whatever is selected.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from eqmeta.types import (
    Delegated,
    ExclusionSpec,
    FieldDescriptor,
    OwnFields,
    Selection,
    TypeDescriptor,
)

DEFAULT_OWNER_MARKERS = frozenset({"RooJavaBean"})


def _exclusion_reason(
    item: FieldDescriptor,
    excluded: frozenset[str],
    version_name: str | None,
) -> str | None:
    if item.name in excluded:
        return "excluded"
    if item.is_static:
        return "static"
    if item.is_transient:
        return "transient"
    if item.is_collection:
        return "collection"
    if item.is_array:
        return "array"
    if version_name is not None and item.name == version_name:
        return "version"
    return None


def explain_exclusions(
    fields: Sequence[FieldDescriptor],
    version_hint: FieldDescriptor | None,
    exclusions: ExclusionSpec | None,
) -> dict[str, str]:
    """Map each rejected field name to the first rule that rejected it."""
    excluded = exclusions.exclude_fields if exclusions is not None else frozenset()
    version_name = version_hint.name if version_hint is not None else None
    reasons: dict[str, str] = {}
    for item in fields:
        reason = _exclusion_reason(item, excluded, version_name)
        if reason is not None:
            reasons.setdefault(item.name, reason)
    return reasons


def _dedupe_by_name(fields: Iterable[FieldDescriptor]) -> list[FieldDescriptor]:
    seen: set[str] = set()
    out: list[FieldDescriptor] = []
    for item in fields:
        if item.name in seen:
            continue
        seen.add(item.name)
        out.append(item)
    return out


def _ordinal_key(item: FieldDescriptor) -> str:
    # str comparison is code-point order, identical to UTF-8 byte order
    return item.name


def select_fields(
    fields: Sequence[FieldDescriptor],
    identity_hint: FieldDescriptor | None,
    version_hint: FieldDescriptor | None,
    exclusions: ExclusionSpec | None,
) -> tuple[FieldDescriptor, ...]:
    """Return the canonical, name-ordered equality field set.

    The identity hint never changes the selection; it is accepted so callers
    pass the same inputs the artifact is built from.
    """
    del identity_hint
    excluded = exclusions.exclude_fields if exclusions is not None else frozenset()
    version_name = version_hint.name if version_hint is not None else None
    kept = [
        item for item in fields if _exclusion_reason(item, excluded, version_name) is None
    ]
    unique = _dedupe_by_name(kept)
    unique.sort(key=_ordinal_key)
    return tuple(unique)


def is_delegated(type_descriptor: TypeDescriptor, owner_markers: Iterable[str]) -> bool:
    return any(type_descriptor.has_marker(marker) for marker in owner_markers)


def select(
    type_descriptor: TypeDescriptor,
    fields: Sequence[FieldDescriptor],
    identity_hint: FieldDescriptor | None,
    version_hint: FieldDescriptor | None,
    exclusions: ExclusionSpec | None,
    *,
    owner_markers: Iterable[str] = DEFAULT_OWNER_MARKERS,
) -> Selection:
    if is_delegated(type_descriptor, owner_markers):
        return Delegated()
    return OwnFields(fields=select_fields(fields, identity_hint, version_hint, exclusions))
