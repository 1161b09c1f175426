"""Tests for error hierarchy."""

from eqmeta.errors import (
    ConfigError,
    DeclarationError,
    EqmetaError,
    MalformedIdentifierError,
    MissingTypeError,
)


def test_hierarchy() -> None:
    assert issubclass(MalformedIdentifierError, EqmetaError)
    assert issubclass(MissingTypeError, EqmetaError)
    assert issubclass(DeclarationError, EqmetaError)
    assert issubclass(ConfigError, EqmetaError)


def test_retryable_default() -> None:
    assert EqmetaError("test").retryable is False
    assert MalformedIdentifierError("MID:x").retryable is False
    assert MissingTypeError("MID:x").retryable is True
    assert ConfigError("test").retryable is False


def test_error_message() -> None:
    err = MalformedIdentifierError("bogus", "artifact")
    assert "bogus" in str(err)
    assert "artifact" in str(err)
    assert err.identifier == "bogus"


def test_catch_as_eqmeta_error() -> None:
    try:
        raise MissingTypeError("MID:eqmeta.EqualsMetadata#SRC_MAIN_JAVA?com.example.Gone")
    except EqmetaError as exc:
        assert exc.retryable is True
        assert isinstance(exc, MissingTypeError)
        assert exc.artifact_id.endswith("com.example.Gone")
