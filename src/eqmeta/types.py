"""Descriptor and artifact data models."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

_GENERIC_RE = re.compile(r"<[^<>]*>")


def erase_type_name(type_name: str) -> str:
    """Strip generic arguments: ``java.util.List<Person>`` -> ``java.util.List``."""
    erased = type_name.strip()
    while True:
        stripped = _GENERIC_RE.sub("", erased)
        if stripped == erased:
            return stripped.replace(" ", "")
        erased = stripped


def is_array_type(type_name: str) -> bool:
    return erase_type_name(type_name).endswith("[]")


def is_collection_type(type_name: str, collection_types: Iterable[str]) -> bool:
    erased = erase_type_name(type_name)
    known = set(collection_types)
    if erased in known:
        return True
    # unqualified names such as ``List<Person>`` match on their simple name
    simple_names = {name.rsplit(".", 1)[-1] for name in known}
    return "." not in erased and erased in simple_names


@dataclass(slots=True, frozen=True)
class FieldDescriptor:
    name: str
    type_name: str
    is_static: bool = False
    is_transient: bool = False
    is_collection: bool = False
    is_array: bool = False

    @classmethod
    def of(
        cls,
        name: str,
        type_name: str,
        *,
        collection_types: Iterable[str],
        is_static: bool = False,
        is_transient: bool = False,
    ) -> FieldDescriptor:
        """Build a descriptor, classifying ``type_name`` as collection or array."""
        return cls(
            name=name,
            type_name=type_name,
            is_static=is_static,
            is_transient=is_transient,
            is_collection=is_collection_type(type_name, collection_types),
            is_array=is_array_type(type_name),
        )


@dataclass(slots=True, frozen=True)
class TypeDescriptor:
    name: str
    path: str
    markers: frozenset[str] = frozenset()

    def has_marker(self, marker: str) -> bool:
        return marker in self.markers


@dataclass(slots=True, frozen=True)
class ExclusionSpec:
    exclude_fields: frozenset[str] = frozenset()

    @classmethod
    def of(cls, names: Iterable[str] = ()) -> ExclusionSpec:
        return cls(exclude_fields=frozenset(names))


@dataclass(slots=True, frozen=True)
class Delegated:
    """Another generator owns equals/hashCode for the type."""


@dataclass(slots=True, frozen=True)
class OwnFields:
    fields: tuple[FieldDescriptor, ...] = ()


Selection = Delegated | OwnFields


@dataclass(slots=True, frozen=True)
class EqualityArtifact:
    artifact_id: str
    type: TypeDescriptor
    fields: tuple[FieldDescriptor, ...] = ()
    identifier_field: FieldDescriptor | None = None
    delegated: bool = False

    @property
    def field_names(self) -> list[str]:
        return [item.name for item in self.fields]


class ArtifactState(str, Enum):
    ABSENT = "absent"
    COMPUTING = "computing"
    CACHED = "cached"
    STALE = "stale"


@dataclass(slots=True)
class ProviderStats:
    recomputations: int = 0
    removals: int = 0
    by_artifact: dict[str, int] = field(default_factory=dict)
