"""Cached module graph snapshot."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from solution_sync.graph.models import DependencyGraph

if TYPE_CHECKING:
    from solution_sync.graph.enumerator import ModuleEnumerator


class GraphProvider:
    """Hold the latest DependencyGraph; re-enumerate only when asked.

    The engine calls refresh() whenever a flush contains a structural change,
    so a stale snapshot is never served across one.
    """

    def __init__(self, enumerator: ModuleEnumerator) -> None:
        self.enumerator = enumerator
        self._snapshot: DependencyGraph | None = None
        self._lock = threading.Lock()

    def current(self) -> DependencyGraph | None:
        """Cached snapshot, or None if never enumerated (or invalidated)."""
        return self._snapshot

    def refresh(self) -> DependencyGraph:
        """Re-enumerate modules and replace the cached snapshot."""
        with self._lock:
            graph = DependencyGraph(self.enumerator.enumerate_modules())
            self._snapshot = graph
            return graph

    def invalidate(self) -> None:
        self._snapshot = None
