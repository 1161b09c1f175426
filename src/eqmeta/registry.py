"""Metadata dependency registry.

Bidirectional graph of ``upstream -> downstream`` identifier edges. A field
identifier is upstream of every artifact computed from it; an artifact may in
turn be upstream of other metadata. The registry is constructed explicitly and
handed to the components that share it.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from eqmeta import ids
from eqmeta.errors import MalformedIdentifierError

logger = logging.getLogger(__name__)

NotificationListener = Callable[[str, str], None]


class DependencyRegistry:
    def __init__(self) -> None:
        self._downstream: dict[str, set[str]] = {}
        self._upstream: dict[str, set[str]] = {}
        self._listeners: dict[str, list[NotificationListener]] = {}
        self.cycles_detected = 0

    def register_edge(self, upstream_id: str, downstream_id: str) -> None:
        for identifier in (upstream_id, downstream_id):
            if not ids.is_valid(identifier):
                raise MalformedIdentifierError(str(identifier))
        if upstream_id == downstream_id:
            raise ValueError(f"self dependency on {upstream_id}")
        self._downstream.setdefault(upstream_id, set()).add(downstream_id)
        self._upstream.setdefault(downstream_id, set()).add(upstream_id)

    def deregister_edge(self, upstream_id: str, downstream_id: str) -> None:
        self._discard(upstream_id, downstream_id)

    def remove_all_edges_for(self, downstream_id: str, upstream_class: str | None = None) -> None:
        """Drop every edge whose downstream end is ``downstream_id``.

        With ``upstream_class`` only edges from identifiers of that class go,
        leaving dependencies other components registered in place.
        """
        for upstream_id in self.upstream_of(downstream_id):
            if upstream_class is None or ids.id_class(upstream_id) == upstream_class:
                self._discard(upstream_id, downstream_id)

    def remove_all_edges_from(self, upstream_id: str) -> None:
        """Drop every edge whose upstream end is ``upstream_id``."""
        for downstream_id in self.downstream_of(upstream_id):
            self._discard(upstream_id, downstream_id)

    def downstream_of(self, upstream_id: str) -> set[str]:
        return set(self._downstream.get(upstream_id, ()))

    def upstream_of(self, downstream_id: str) -> set[str]:
        return set(self._upstream.get(downstream_id, ()))

    def has_edge(self, upstream_id: str, downstream_id: str) -> bool:
        return downstream_id in self._downstream.get(upstream_id, ())

    def edges(self) -> list[tuple[str, str]]:
        return sorted(
            (upstream_id, downstream_id)
            for upstream_id, targets in self._downstream.items()
            for downstream_id in targets
        )

    def clear_all(self) -> None:
        self._downstream.clear()
        self._upstream.clear()

    def add_listener(self, id_class: str, listener: NotificationListener) -> None:
        """Deliver notifications for downstream ids of ``id_class`` to ``listener``."""
        self._listeners.setdefault(id_class, []).append(listener)

    def remove_listener(self, id_class: str, listener: NotificationListener) -> None:
        listeners = self._listeners.get(id_class, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            self._listeners.pop(id_class, None)

    def notify_downstream(self, upstream_id: str, visited: set[str] | None = None) -> set[str]:
        """Walk the downstream closure of ``upstream_id`` breadth-first.

        Each reachable identifier is delivered at most once per notification.
        Re-reaching an identifier that leads back to the current one is a
        cycle; it is logged and the walk continues. Returns the set of identifiers
        delivered, so callers can chain notifications against the same set.
        """
        seen = visited if visited is not None else set()
        seen.add(upstream_id)
        delivered: set[str] = set()
        queue: deque[str] = deque([upstream_id])
        while queue:
            current = queue.popleft()
            # read edges after delivery, a listener may have rewired them
            for downstream_id in sorted(self.downstream_of(current)):
                if downstream_id in seen:
                    if self._reaches(downstream_id, current):
                        self.cycles_detected += 1
                        logger.warning(
                            "dependency_cycle_detected upstream=%s downstream=%s",
                            current,
                            downstream_id,
                        )
                    continue
                seen.add(downstream_id)
                self._deliver(current, downstream_id)
                delivered.add(downstream_id)
                queue.append(downstream_id)
        return delivered

    def _reaches(self, start_id: str, target_id: str) -> bool:
        stack = [start_id]
        reached: set[str] = set()
        while stack:
            current = stack.pop()
            if current == target_id:
                return True
            if current in reached:
                continue
            reached.add(current)
            stack.extend(self._downstream.get(current, ()))
        return False

    def _deliver(self, upstream_id: str, downstream_id: str) -> None:
        try:
            id_cls = ids.id_class(downstream_id)
        except MalformedIdentifierError:
            return
        for listener in list(self._listeners.get(id_cls, ())):
            listener(upstream_id, downstream_id)

    def _discard(self, upstream_id: str, downstream_id: str) -> None:
        targets = self._downstream.get(upstream_id)
        if targets is not None:
            targets.discard(downstream_id)
            if not targets:
                del self._downstream[upstream_id]
        sources = self._upstream.get(downstream_id)
        if sources is not None:
            sources.discard(upstream_id)
            if not sources:
                del self._upstream[downstream_id]
