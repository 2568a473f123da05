"""Structural contracts shared by the scope tree and its collaborators."""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable


@runtime_checkable
class StatsReporter(Protocol):
    """Sink that receives observations during a flush pass.

    ``report_counter`` and ``report_gauge`` are called for every changed
    metric of every scope, then ``flush`` is called exactly once per pass.
    Implementations may also expose ``close()``; it is called once when the
    scope tree is closed.
    """

    def report_counter(self, name: str, tags: Mapping[str, str], value: int) -> None: ...

    def report_gauge(self, name: str, tags: Mapping[str, str], value: float) -> None: ...

    def flush(self) -> None: ...


@runtime_checkable
class CounterHandle(Protocol):
    def inc(self, delta: int = 1) -> None: ...


@runtime_checkable
class GaugeHandle(Protocol):
    def update(self, value: float) -> None: ...
