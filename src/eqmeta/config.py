"""Engine configuration contract."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from eqmeta.errors import ConfigError

RECOMPUTE_POLICIES = ("eager", "lazy")

DEFAULT_COLLECTION_TYPES = (
    "java.util.Collection,java.util.List,java.util.Set,java.util.SortedSet,"
    "java.util.Map,java.util.SortedMap,java.util.Vector,java.util.ArrayList,"
    "java.util.LinkedList,java.util.HashSet,java.util.LinkedHashSet,java.util.TreeSet,"
    "java.util.HashMap,java.util.LinkedHashMap,java.util.TreeMap,java.util.Stack"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")
    recompute_policy: str = Field(alias="EQMETA_RECOMPUTE_POLICY", default="eager")
    trigger_annotation: str = Field(alias="EQMETA_TRIGGER_ANNOTATION", default="RooEquals")
    owner_markers: str = Field(alias="EQMETA_OWNER_MARKERS", default="RooJavaBean")
    collection_types: str = Field(
        alias="EQMETA_COLLECTION_TYPES", default=DEFAULT_COLLECTION_TYPES
    )

    @property
    def owner_marker_set(self) -> frozenset[str]:
        return _split_csv(self.owner_markers)

    @property
    def collection_type_set(self) -> frozenset[str]:
        return _split_csv(self.collection_types)


def _split_csv(raw: str) -> frozenset[str]:
    return frozenset(item.strip() for item in raw.split(",") if item.strip())


def validate_settings(settings: Settings) -> None:
    problems: list[str] = []
    if settings.recompute_policy not in RECOMPUTE_POLICIES:
        problems.append(
            "EQMETA_RECOMPUTE_POLICY(one of " + ", ".join(RECOMPUTE_POLICIES) + ")"
        )
    if not settings.trigger_annotation.strip():
        problems.append("EQMETA_TRIGGER_ANNOTATION(non-empty)")
    if problems:
        raise ConfigError("invalid engine configuration: " + ", ".join(problems))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
