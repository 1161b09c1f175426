"""Incremental equality metadata engine."""

from eqmeta.provider import EqualsMetadataProvider
from eqmeta.registry import DependencyRegistry
from eqmeta.selector import select, select_fields
from eqmeta.store import DeclarationStore, InMemoryDeclarationStore
from eqmeta.types import (
    ArtifactState,
    Delegated,
    EqualityArtifact,
    ExclusionSpec,
    FieldDescriptor,
    OwnFields,
    TypeDescriptor,
)

__all__ = [
    "ArtifactState",
    "DeclarationStore",
    "Delegated",
    "DependencyRegistry",
    "EqualityArtifact",
    "EqualsMetadataProvider",
    "ExclusionSpec",
    "FieldDescriptor",
    "InMemoryDeclarationStore",
    "OwnFields",
    "TypeDescriptor",
    "select",
    "select_fields",
]
