import pytest

from eqmeta.config import get_settings
from eqmeta.logging import clear_context
from eqmeta.provider import EqualsMetadataProvider
from eqmeta.registry import DependencyRegistry
from eqmeta.store import InMemoryDeclarationStore

_ENV_KEYS = (
    "APP_ENV",
    "LOG_LEVEL",
    "EQMETA_RECOMPUTE_POLICY",
    "EQMETA_TRIGGER_ANNOTATION",
    "EQMETA_OWNER_MARKERS",
    "EQMETA_COLLECTION_TYPES",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # keep a developer's .env out of the settings under test
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    clear_context()
    yield
    get_settings.cache_clear()
    clear_context()


@pytest.fixture
def store() -> InMemoryDeclarationStore:
    return InMemoryDeclarationStore()


@pytest.fixture
def registry() -> DependencyRegistry:
    return DependencyRegistry()


@pytest.fixture
def provider(store: InMemoryDeclarationStore, registry: DependencyRegistry):
    instance = EqualsMetadataProvider(store, registry)
    instance.open()
    yield instance
    instance.close()
