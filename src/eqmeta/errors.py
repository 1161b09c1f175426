"""eqmeta exception hierarchy.

All eqmeta-specific exceptions inherit from EqmetaError,
enabling structured error handling and cleaner catch clauses.
"""


class EqmetaError(Exception):
    """Base exception for all eqmeta errors."""

    def __init__(self, message: str = "", *, retryable: bool = False) -> None:
        super().__init__(message)
        self.retryable = retryable


class MalformedIdentifierError(EqmetaError):
    """Identifier was not produced by the eqmeta identifier scheme."""

    def __init__(self, identifier: str, expected: str = "") -> None:
        detail = f" (expected {expected} identifier)" if expected else ""
        super().__init__(f"malformed identifier: {identifier!r}{detail}")
        self.identifier = identifier


class MissingTypeError(EqmetaError):
    """The governing type is no longer present in the declaration store."""

    def __init__(self, artifact_id: str) -> None:
        super().__init__(f"no type backs artifact {artifact_id}", retryable=True)
        self.artifact_id = artifact_id


class DeclarationError(EqmetaError):
    """Invalid declaration document."""


class ConfigError(EqmetaError):
    """Invalid or missing configuration."""
