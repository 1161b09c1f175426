from eqmeta.config import DEFAULT_COLLECTION_TYPES
from eqmeta.types import (
    EqualityArtifact,
    FieldDescriptor,
    TypeDescriptor,
    erase_type_name,
    is_array_type,
    is_collection_type,
)

COLLECTIONS = frozenset(DEFAULT_COLLECTION_TYPES.split(","))


def test_erase_type_name_strips_nested_generics() -> None:
    assert erase_type_name("java.util.Map<String, java.util.List<Long>>") == "java.util.Map"
    assert erase_type_name(" java.lang.String ") == "java.lang.String"


def test_collection_detection() -> None:
    assert is_collection_type("java.util.List<com.example.Person>", COLLECTIONS)
    assert is_collection_type("java.util.HashMap", COLLECTIONS)
    assert is_collection_type("Set<String>", COLLECTIONS)
    assert not is_collection_type("java.lang.String", COLLECTIONS)
    assert not is_collection_type("com.example.List", COLLECTIONS)


def test_array_detection() -> None:
    assert is_array_type("byte[]")
    assert is_array_type("java.util.List<String>[]")
    assert not is_array_type("java.lang.String")


def test_field_descriptor_of_classifies_type() -> None:
    friends = FieldDescriptor.of(
        "friends", "java.util.List<Person>", collection_types=COLLECTIONS
    )
    assert friends.is_collection is True
    assert friends.is_array is False
    data = FieldDescriptor.of("data", "char[]", collection_types=COLLECTIONS, is_transient=True)
    assert data.is_array is True
    assert data.is_transient is True


def test_artifact_field_names() -> None:
    owner = TypeDescriptor(name="Order", path="SRC_MAIN_JAVA")
    artifact = EqualityArtifact(
        artifact_id="MID:eqmeta.EqualsMetadata#SRC_MAIN_JAVA?Order",
        type=owner,
        fields=(FieldDescriptor("id", "long"), FieldDescriptor("total", "java.math.BigDecimal")),
    )
    assert artifact.field_names == ["id", "total"]
    assert artifact.delegated is False
    assert artifact.identifier_field is None
