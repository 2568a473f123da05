"""Deduplicating identity -> scope map shared by a whole scope tree."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from statscope.agent.scope import Scope


class ScopeRegistry:
    """Owns every scope of a tree, keyed by canonical identity.

    Scopes are never evicted. ``get_or_create`` checks without building first
    and re-checks under the lock before storing, so racing callers for one
    identity all receive the same instance.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._scopes: dict[str, Scope] = {}

    def get(self, identity: str) -> Scope | None:
        with self._lock:
            return self._scopes.get(identity)

    def get_or_create(self, identity: str, factory: Callable[[], Scope]) -> Scope:
        with self._lock:
            existing = self._scopes.get(identity)
        if existing is not None:
            return existing

        candidate = factory()
        with self._lock:
            existing = self._scopes.get(identity)
            if existing is not None:
                return existing
            self._scopes[identity] = candidate
            return candidate

    def scopes(self) -> list[Scope]:
        """Return a point-in-time list of registered scopes."""

        with self._lock:
            return list(self._scopes.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._scopes)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._scopes
