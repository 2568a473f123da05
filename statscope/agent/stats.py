"""Counter and gauge accumulation cells."""

from __future__ import annotations

import threading


class Counter:
    """Running integer total with a delta-since-last-report baseline."""

    __slots__ = ("_lock", "_current", "_reported")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current = 0
        self._reported = 0

    def inc(self, delta: int = 1) -> None:
        with self._lock:
            self._current += delta

    def value(self) -> int:
        """Return the running total without touching report state."""

        with self._lock:
            return self._current

    def snapshot(self) -> int:
        """Return the unreported delta without moving the baseline."""

        with self._lock:
            return self._current - self._reported

    def consume_delta(self) -> int:
        """Return the unreported delta and move the baseline to the current total.

        Consumption is serialized per counter, so two concurrent callers can
        never both observe the same increments.
        """

        with self._lock:
            delta = self._current - self._reported
            self._reported = self._current
            return delta


class Gauge:
    """Last-writer-wins float value with a dirty flag."""

    __slots__ = ("_lock", "_value", "_dirty")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0.0
        self._dirty = False

    def update(self, value: float) -> None:
        with self._lock:
            self._value = float(value)
            self._dirty = True

    def value(self) -> float:
        with self._lock:
            return self._value

    def consume_if_dirty(self) -> tuple[float, bool]:
        """Return ``(value, was_dirty)`` and clear the dirty flag."""

        with self._lock:
            dirty = self._dirty
            self._dirty = False
            return self._value, dirty
