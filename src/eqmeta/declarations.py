"""JSON declaration documents loaded into an in-memory store."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, model_validator

from eqmeta.config import Settings, get_settings
from eqmeta.errors import DeclarationError
from eqmeta.store import InMemoryDeclarationStore
from eqmeta.types import ExclusionSpec, FieldDescriptor, TypeDescriptor


class FieldSpec(BaseModel):
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    static: bool = False
    transient: bool = False


class EqualsSpec(BaseModel):
    exclude_fields: list[str] = Field(default_factory=list)


class TypeSpec(BaseModel):
    name: str = Field(min_length=1)
    path: str = "SRC_MAIN_JAVA"
    markers: list[str] = Field(default_factory=list)
    fields: list[FieldSpec] = Field(default_factory=list)
    equals: EqualsSpec | None = None
    identifier: str | None = None
    version: str | None = None


class DeclarationDocument(BaseModel):
    types: list[TypeSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_types(self) -> DeclarationDocument:
        seen: set[tuple[str, str]] = set()
        for spec in self.types:
            key = (spec.name, spec.path)
            if key in seen:
                raise ValueError(f"duplicate type declaration: {spec.name} ({spec.path})")
            seen.add(key)
        return self


def parse_document(raw: str) -> DeclarationDocument:
    try:
        return DeclarationDocument.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise DeclarationError(f"declaration document is not valid JSON: {exc}") from exc
    except ValidationError as exc:
        raise DeclarationError(f"invalid declaration document: {exc}") from exc


def read_document(path: Path) -> DeclarationDocument:
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise DeclarationError(f"declaration document is not valid UTF-8: {path}: {exc}") from exc
    except OSError as exc:
        raise DeclarationError(f"cannot read declaration document {path}: {exc}") from exc
    return parse_document(raw)


def populate_store(
    store: InMemoryDeclarationStore,
    document: DeclarationDocument,
    settings: Settings | None = None,
) -> list[str]:
    """Load every declared type into ``store``; returns the type identifiers."""
    resolved = settings or get_settings()
    collection_types = resolved.collection_type_set
    loaded: list[str] = []
    for spec in document.types:
        descriptor = TypeDescriptor(name=spec.name, path=spec.path, markers=frozenset(spec.markers))
        fields = [
            FieldDescriptor.of(
                item.name,
                item.type,
                collection_types=collection_types,
                is_static=item.static,
                is_transient=item.transient,
            )
            for item in spec.fields
        ]
        annotations: dict[str, ExclusionSpec] = {}
        if spec.equals is not None:
            annotations[resolved.trigger_annotation] = ExclusionSpec.of(spec.equals.exclude_fields)
        loaded.append(
            store.put_type(
                descriptor,
                fields,
                annotations=annotations,
                identity_name=spec.identifier,
                version_name=spec.version,
            )
        )
    return loaded
