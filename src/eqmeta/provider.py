"""Equality metadata provider.

Owns the artifact cache and the artifact side of the dependency registry.
Declaration changes arrive through ``notify``; each affected artifact goes
stale and is recomputed, eagerly or on the next ``get``, and the change is
propagated to whatever depends on the artifact.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable

from eqmeta import ids
from eqmeta.config import Settings, get_settings, validate_settings
from eqmeta.errors import MalformedIdentifierError, MissingTypeError
from eqmeta.logging import bind_context, unbind_context
from eqmeta.registry import DependencyRegistry
from eqmeta.selector import select
from eqmeta.store import DeclarationStore
from eqmeta.types import (
    ArtifactState,
    Delegated,
    EqualityArtifact,
    ProviderStats,
    TypeDescriptor,
)

logger = logging.getLogger(__name__)

ArtifactListener = Callable[[str, EqualityArtifact | None], None]


class EqualsMetadataProvider:
    """Computes and caches equality artifacts for opted-in types."""

    def __init__(
        self,
        store: DeclarationStore,
        registry: DependencyRegistry,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        validate_settings(self._settings)
        self._store = store
        self._registry = registry
        self._eager = self._settings.recompute_policy == "eager"
        self._trigger = self._settings.trigger_annotation
        self._owner_markers = self._settings.owner_marker_set
        self._cache: dict[str, EqualityArtifact] = {}
        self._states: dict[str, ArtifactState] = {}
        self._subscribers: list[ArtifactListener] = []
        # removed artifacts whose outgoing edges wait for propagation to finish
        self._detached: set[str] = set()
        self._propagating = 0
        self._lock = threading.RLock()
        self._open = False
        self.stats = ProviderStats()

    # -- lifecycle ----------------------------------------------------------

    def open(self) -> None:
        with self._lock:
            if self._open:
                return
            self._store.add_listener(self.notify)
            self._registry.add_listener(ids.ARTIFACT_CLASS, self._on_downstream)
            self._open = True

    def close(self) -> None:
        """Tear down: drop cache, edges and listener registrations."""
        with self._lock:
            if self._open:
                self._store.remove_listener(self.notify)
                self._registry.remove_listener(ids.ARTIFACT_CLASS, self._on_downstream)
                self._open = False
            self._cache.clear()
            self._states.clear()
            self._detached.clear()
            self._registry.clear_all()

    def __enter__(self) -> EqualsMetadataProvider:
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- consumer API -------------------------------------------------------

    def subscribe(self, listener: ArtifactListener) -> Callable[[], None]:
        """Register an "artifact changed" callback; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._subscribers:
                    self._subscribers.remove(listener)

        return unsubscribe

    def get(self, artifact_id: str) -> EqualityArtifact | None:
        """Return the current artifact, or None when no type backs it."""
        ids.decode_artifact_id(artifact_id)
        with self._lock:
            if self.state(artifact_id) is ArtifactState.CACHED:
                return self._cache[artifact_id]
            artifact = self._recompute(artifact_id)
            if artifact is None and artifact_id in self._detached and not self._propagating:
                # a lazily discovered removal still reaches its dependents
                self._propagate([], artifact_id, {artifact_id})
            return artifact

    def require(self, artifact_id: str) -> EqualityArtifact:
        artifact = self.get(artifact_id)
        if artifact is None:
            raise MissingTypeError(artifact_id)
        return artifact

    def get_for_type(self, type_name: str, path: str) -> EqualityArtifact | None:
        return self.get(ids.artifact_id(type_name, path))

    def state(self, artifact_id: str) -> ArtifactState:
        with self._lock:
            return self._states.get(artifact_id, ArtifactState.ABSENT)

    def cached_ids(self) -> list[str]:
        with self._lock:
            return sorted(self._cache)

    def invalidate(self, artifact_id: str) -> None:
        ids.decode_artifact_id(artifact_id)
        with self._lock:
            self._mark_stale([artifact_id])

    # -- notifications ------------------------------------------------------

    def notify(self, upstream_id: str) -> None:
        """Handle a declaration change for a type or field identifier."""
        with self._lock:
            bind_context(upstream_id=upstream_id)
            try:
                self._propagate(self._direct_targets(upstream_id), upstream_id, {upstream_id})
            finally:
                unbind_context("upstream_id")

    def _propagate(self, targets: list[str], upstream_id: str, visited: set[str]) -> None:
        self._propagating += 1
        try:
            for artifact_id in targets:
                visited.add(artifact_id)
                self._refresh(artifact_id)
                self._registry.notify_downstream(artifact_id, visited)
            self._registry.notify_downstream(upstream_id, visited)
        finally:
            self._propagating -= 1
            if not self._propagating:
                self._drop_detached()

    def _drop_detached(self) -> None:
        while self._detached:
            artifact_id = self._detached.pop()
            if artifact_id not in self._cache:
                self._registry.remove_all_edges_from(artifact_id)

    def _on_downstream(self, upstream_id: str, downstream_id: str) -> None:
        logger.debug("downstream_notified upstream=%s downstream=%s", upstream_id, downstream_id)
        self._refresh(downstream_id)

    def _refresh(self, artifact_id: str) -> None:
        self._mark_stale([artifact_id])
        if self._eager:
            self._recompute(artifact_id)

    def _direct_targets(self, upstream_id: str) -> list[str]:
        """Artifacts named by ``upstream_id`` itself rather than by a registry edge."""
        try:
            id_cls = ids.id_class(upstream_id)
        except MalformedIdentifierError:
            logger.warning("ignoring malformed notification id=%r", upstream_id)
            return []
        if id_cls == ids.TYPE_CLASS:
            return [ids.artifact_id_for_type(upstream_id)]
        if id_cls == ids.ARTIFACT_CLASS:
            return [upstream_id]
        if id_cls != ids.FIELD_CLASS:
            return []
        selected_by = [
            downstream_id
            for downstream_id in self._registry.downstream_of(upstream_id)
            if ids.id_class(downstream_id) == ids.ARTIFACT_CLASS
        ]
        if selected_by:
            return []
        # an unselected field may become selectable (rename, modifier change)
        type_name, path, _ = ids.decode_field_id(upstream_id)
        return [ids.artifact_id(type_name, path)]

    def _mark_stale(self, artifact_ids: Iterable[str]) -> None:
        for artifact_id in artifact_ids:
            if self._states.get(artifact_id) is ArtifactState.CACHED:
                self._states[artifact_id] = ArtifactState.STALE

    # -- computation --------------------------------------------------------

    def _recompute(self, artifact_id: str) -> EqualityArtifact | None:
        self._states[artifact_id] = ArtifactState.COMPUTING
        try:
            artifact = self._compute(artifact_id)
            selected = self._edge_sources(artifact)
        except Exception:
            self._restore(artifact_id)
            raise
        if artifact is None:
            self._remove(artifact_id)
            return None

        self._registry.remove_all_edges_for(artifact_id, upstream_class=ids.FIELD_CLASS)
        for source_id in selected:
            self._registry.register_edge(source_id, artifact_id)
        self._cache[artifact_id] = artifact
        self._states[artifact_id] = ArtifactState.CACHED
        self.stats.recomputations += 1
        self.stats.by_artifact[artifact_id] = self.stats.by_artifact.get(artifact_id, 0) + 1
        logger.info(
            "artifact_computed id=%s fields=%s delegated=%s",
            artifact_id,
            ",".join(artifact.field_names),
            artifact.delegated,
        )
        self._publish(artifact_id, artifact)
        return artifact

    def _compute(self, artifact_id: str) -> EqualityArtifact | None:
        type_identifier = ids.governor_type_id(artifact_id)
        type_descriptor = self._store.get_type(type_identifier)
        if type_descriptor is None:
            return None
        exclusions = self._store.get_annotation_config(type_descriptor, self._trigger)
        if exclusions is None:
            # type has not opted in to equality generation
            return None

        fields = self._store.get_fields(type_descriptor)
        identity_field = self._store.get_identity_field(type_descriptor)
        version_field = self._store.get_version_field(type_descriptor)
        selection = select(
            type_descriptor,
            fields,
            identity_field,
            version_field,
            exclusions,
            owner_markers=self._owner_markers,
        )
        if isinstance(selection, Delegated):
            return EqualityArtifact(artifact_id=artifact_id, type=type_descriptor, delegated=True)
        return EqualityArtifact(
            artifact_id=artifact_id,
            type=type_descriptor,
            fields=selection.fields,
            identifier_field=identity_field,
        )

    def _edge_sources(self, artifact: EqualityArtifact | None) -> list[str]:
        if artifact is None or artifact.delegated:
            return []
        owner: TypeDescriptor = artifact.type
        return [ids.field_id(owner.name, owner.path, item.name) for item in artifact.fields]

    def _remove(self, artifact_id: str) -> None:
        existed = self._cache.pop(artifact_id, None) is not None
        self._registry.remove_all_edges_for(artifact_id)
        self._states.pop(artifact_id, None)
        if self._registry.downstream_of(artifact_id):
            self._detached.add(artifact_id)
        if existed:
            self.stats.removals += 1
            logger.info("artifact_removed id=%s", artifact_id)
            self._publish(artifact_id, None)

    def _restore(self, artifact_id: str) -> None:
        # the previous (entry, edges) pair is untouched; it stays stale
        if artifact_id in self._cache:
            self._states[artifact_id] = ArtifactState.STALE
        else:
            self._states.pop(artifact_id, None)

    def _publish(self, artifact_id: str, artifact: EqualityArtifact | None) -> None:
        for listener in list(self._subscribers):
            listener(artifact_id, artifact)
