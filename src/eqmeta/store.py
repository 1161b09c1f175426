"""Declaration store interface and the in-memory implementation.

The engine only reads declarations through ``DeclarationStore``. The in-memory
store backs the CLI and the tests; every mutation notifies listeners with the
identifier of what changed (a type id for structural changes, a field id when
an existing field is renamed, replaced or removed).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from typing import Protocol

from eqmeta import ids
from eqmeta.types import ExclusionSpec, FieldDescriptor, TypeDescriptor

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


class DeclarationStore(Protocol):
    def get_type(self, type_identifier: str) -> TypeDescriptor | None: ...

    def get_fields(self, type_descriptor: TypeDescriptor) -> list[FieldDescriptor]: ...

    def get_annotation_config(
        self, type_descriptor: TypeDescriptor, kind: str
    ) -> ExclusionSpec | None: ...

    def get_identity_field(self, type_descriptor: TypeDescriptor) -> FieldDescriptor | None: ...

    def get_version_field(self, type_descriptor: TypeDescriptor) -> FieldDescriptor | None: ...

    def add_listener(self, listener: ChangeListener) -> None: ...

    def remove_listener(self, listener: ChangeListener) -> None: ...


@dataclass(slots=True)
class _TypeEntry:
    descriptor: TypeDescriptor
    fields: list[FieldDescriptor] = field(default_factory=list)
    annotations: dict[str, ExclusionSpec] = field(default_factory=dict)
    identity_name: str | None = None
    version_name: str | None = None

    def find(self, name: str | None) -> FieldDescriptor | None:
        if name is None:
            return None
        for item in self.fields:
            if item.name == name:
                return item
        return None


class InMemoryDeclarationStore:
    def __init__(self) -> None:
        self._types: dict[str, _TypeEntry] = {}
        self._listeners: list[ChangeListener] = []

    # -- DeclarationStore -------------------------------------------------

    def get_type(self, type_identifier: str) -> TypeDescriptor | None:
        entry = self._types.get(type_identifier)
        return entry.descriptor if entry is not None else None

    def get_fields(self, type_descriptor: TypeDescriptor) -> list[FieldDescriptor]:
        entry = self._entry_for(type_descriptor)
        return list(entry.fields) if entry is not None else []

    def get_annotation_config(
        self, type_descriptor: TypeDescriptor, kind: str
    ) -> ExclusionSpec | None:
        entry = self._entry_for(type_descriptor)
        return entry.annotations.get(kind) if entry is not None else None

    def get_identity_field(self, type_descriptor: TypeDescriptor) -> FieldDescriptor | None:
        entry = self._entry_for(type_descriptor)
        return entry.find(entry.identity_name) if entry is not None else None

    def get_version_field(self, type_descriptor: TypeDescriptor) -> FieldDescriptor | None:
        entry = self._entry_for(type_descriptor)
        return entry.find(entry.version_name) if entry is not None else None

    def add_listener(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # -- mutation -----------------------------------------------------------

    def type_ids(self) -> list[str]:
        return sorted(self._types)

    def put_type(
        self,
        descriptor: TypeDescriptor,
        fields: Iterable[FieldDescriptor] = (),
        *,
        annotations: dict[str, ExclusionSpec] | None = None,
        identity_name: str | None = None,
        version_name: str | None = None,
    ) -> str:
        """Insert or replace a type; returns its type identifier."""
        type_identifier = ids.type_id(descriptor.name, descriptor.path)
        self._types[type_identifier] = _TypeEntry(
            descriptor=descriptor,
            fields=list(fields),
            annotations=dict(annotations or {}),
            identity_name=identity_name,
            version_name=version_name,
        )
        self._notify(type_identifier)
        return type_identifier

    def remove_type(self, type_identifier: str) -> bool:
        if self._types.pop(type_identifier, None) is None:
            return False
        self._notify(type_identifier)
        return True

    def set_markers(self, type_identifier: str, markers: Iterable[str]) -> None:
        entry = self._require(type_identifier)
        entry.descriptor = replace(entry.descriptor, markers=frozenset(markers))
        self._notify(type_identifier)

    def set_annotation(
        self, type_identifier: str, kind: str, config: ExclusionSpec | None
    ) -> None:
        entry = self._require(type_identifier)
        if config is None:
            entry.annotations.pop(kind, None)
        else:
            entry.annotations[kind] = config
        self._notify(type_identifier)

    def set_identity_field(self, type_identifier: str, name: str | None) -> None:
        self._require(type_identifier).identity_name = name
        self._notify(type_identifier)

    def set_version_field(self, type_identifier: str, name: str | None) -> None:
        self._require(type_identifier).version_name = name
        self._notify(type_identifier)

    def add_field(self, type_identifier: str, item: FieldDescriptor) -> None:
        self._require(type_identifier).fields.append(item)
        # a new field has no edges yet, so the owning type is notified
        self._notify(type_identifier)

    def replace_field(self, type_identifier: str, item: FieldDescriptor) -> None:
        entry = self._require(type_identifier)
        index = self._index_of(entry, item.name)
        entry.fields[index] = item
        self._notify(self._field_identifier(entry, item.name))

    def rename_field(self, type_identifier: str, old_name: str, new_name: str) -> None:
        entry = self._require(type_identifier)
        index = self._index_of(entry, old_name)
        entry.fields[index] = replace(entry.fields[index], name=new_name)
        if entry.identity_name == old_name:
            entry.identity_name = new_name
        if entry.version_name == old_name:
            entry.version_name = new_name
        self._notify(self._field_identifier(entry, old_name))

    def remove_field(self, type_identifier: str, name: str) -> None:
        entry = self._require(type_identifier)
        del entry.fields[self._index_of(entry, name)]
        self._notify(self._field_identifier(entry, name))

    # -- helpers ------------------------------------------------------------

    def _entry_for(self, type_descriptor: TypeDescriptor) -> _TypeEntry | None:
        return self._types.get(ids.type_id(type_descriptor.name, type_descriptor.path))

    def _require(self, type_identifier: str) -> _TypeEntry:
        entry = self._types.get(type_identifier)
        if entry is None:
            raise KeyError(f"unknown type: {type_identifier}")
        return entry

    @staticmethod
    def _index_of(entry: _TypeEntry, name: str) -> int:
        for index, item in enumerate(entry.fields):
            if item.name == name:
                return index
        raise KeyError(f"{entry.descriptor.name} has no field {name!r}")

    @staticmethod
    def _field_identifier(entry: _TypeEntry, name: str) -> str:
        return ids.field_id(entry.descriptor.name, entry.descriptor.path, name)

    def _notify(self, identifier: str) -> None:
        logger.debug("declaration_changed id=%s", identifier)
        for listener in list(self._listeners):
            listener(identifier)
