"""Named, tagged metric scopes sharing one registry and one report loop."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

from statscope.agent.errors import ConfigurationError
from statscope.agent.interfaces import StatsReporter
from statscope.agent.keymap import RESERVED_CHARACTERS, key_map, validate_name, validate_tags
from statscope.agent.registry import ScopeRegistry
from statscope.agent.report_loop import ReportLoop
from statscope.agent.schemas import CounterSnapshot, FlushSummary, GaugeSnapshot, Snapshot
from statscope.agent.stats import Counter, Gauge
from statscope.lib.logger import get_logger

if TYPE_CHECKING:
    from statscope.config import Settings

logger = get_logger(__name__)

DEFAULT_SEPARATOR = "."


@dataclass
class ScopeOptions:
    """Options for building a root scope."""

    prefix: str = ""
    tags: Mapping[str, str] = field(default_factory=dict)
    reporter: StatsReporter | None = None
    separator: str = DEFAULT_SEPARATOR

    @classmethod
    def from_settings(cls, settings: Settings, reporter: StatsReporter | None = None) -> "ScopeOptions":
        return cls(
            prefix=settings.metrics_prefix,
            reporter=reporter,
            separator=settings.metrics_separator,
        )


def merge_tags(left: Mapping[str, str], right: Mapping[str, str]) -> dict[str, str]:
    """Return ``left`` overlaid with ``right``; right-hand values win."""

    merged = dict(left)
    merged.update(right)
    return merged


class Scope:
    """Container of counters and gauges under a prefix and a tag set.

    Scopes are created through ``new_root_scope`` and the ``tagged`` /
    ``sub_scope`` derivations, never directly. Every scope of a tree shares the
    registry that owns it and the report loop that flushes it, so ``report``,
    ``snapshot`` and ``close`` act on the whole tree whichever scope they are
    called on.
    """

    def __init__(
        self,
        prefix: str,
        tags: dict[str, str],
        separator: str,
        registry: ScopeRegistry,
        loop: ReportLoop,
        identity: str | None = None,
    ) -> None:
        self._prefix = prefix
        self._tags = tags
        self._separator = separator
        self._identity = identity if identity is not None else key_map(prefix, tags)
        self._registry = registry
        self._loop = loop

        self._counter_lock = threading.Lock()
        self._gauge_lock = threading.Lock()
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}

    def __repr__(self) -> str:
        return f"Scope(identity={self._identity!r})"

    def __enter__(self) -> "Scope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def tags(self) -> Mapping[str, str]:
        return MappingProxyType(self._tags)

    @property
    def separator(self) -> str:
        return self._separator

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def registry(self) -> ScopeRegistry:
        return self._registry

    @property
    def loop(self) -> ReportLoop:
        return self._loop

    # ---- Metrics ----

    def counter(self, name: str) -> Counter:
        """Return the counter called ``name``, creating it on first use."""

        counter = self._counters.get(name)
        if counter is not None:
            return counter
        with self._counter_lock:
            counter = self._counters.get(name)
            if counter is None:
                validate_name(name, kind="metric name")
                counter = self._counters[name] = Counter()
            return counter

    def gauge(self, name: str) -> Gauge:
        """Return the gauge called ``name``, creating it on first use."""

        gauge = self._gauges.get(name)
        if gauge is not None:
            return gauge
        with self._gauge_lock:
            gauge = self._gauges.get(name)
            if gauge is None:
                validate_name(name, kind="metric name")
                gauge = self._gauges[name] = Gauge()
            return gauge

    # ---- Derivation ----

    def tagged(self, tags: Mapping[str, str]) -> "Scope":
        """Return the scope with this prefix and these tags overlaid with ``tags``."""

        extra = validate_tags(tags)
        if not extra:
            return self
        return self._subscope(self._prefix, merge_tags(self._tags, extra))

    def sub_scope(self, name: str) -> "Scope":
        """Return the child scope ``<prefix><separator><name>`` with the same tags."""

        validate_name(name, kind="scope name")
        return self._subscope(self.fully_qualified_name(name), dict(self._tags))

    def _subscope(self, prefix: str, tags: dict[str, str]) -> "Scope":
        identity = key_map(prefix, tags)
        return self._registry.get_or_create(
            identity,
            lambda: Scope(prefix, tags, self._separator, self._registry, self._loop, identity),
        )

    def fully_qualified_name(self, name: str) -> str:
        if not self._prefix:
            return name
        return self._prefix + self._separator + name

    # ---- Reporting ----

    def _counter_items(self) -> list[tuple[str, Counter]]:
        with self._counter_lock:
            return list(self._counters.items())

    def _gauge_items(self) -> list[tuple[str, Gauge]]:
        with self._gauge_lock:
            return list(self._gauges.items())

    def _report(self, reporter: StatsReporter) -> tuple[int, int, int]:
        """Forward changed metrics of this scope; returns (counters, gauges, errors)."""

        counters = gauges = errors = 0
        for name, counter in self._counter_items():
            delta = counter.consume_delta()
            if delta == 0:
                continue
            fq_name = self.fully_qualified_name(name)
            try:
                reporter.report_counter(fq_name, dict(self._tags), delta)
            except Exception:
                errors += 1
                logger.warning(
                    "statscope.report.counter_failed",
                    exc_info=True,
                    extra={"metric": fq_name, "scope_identity": self._identity, "dropped": delta},
                )
            else:
                counters += 1

        for name, gauge in self._gauge_items():
            value, dirty = gauge.consume_if_dirty()
            if not dirty:
                continue
            fq_name = self.fully_qualified_name(name)
            try:
                reporter.report_gauge(fq_name, dict(self._tags), value)
            except Exception:
                errors += 1
                logger.warning(
                    "statscope.report.gauge_failed",
                    exc_info=True,
                    extra={"metric": fq_name, "scope_identity": self._identity, "dropped": value},
                )
            else:
                gauges += 1

        return counters, gauges, errors

    def report(self) -> FlushSummary:
        """Flush the whole tree now instead of waiting for the timer."""

        return self._loop.report()

    def snapshot(self) -> Snapshot:
        """Return the unreported counter deltas and last gauge values of the tree."""

        counters: dict[str, CounterSnapshot] = {}
        gauges: dict[str, GaugeSnapshot] = {}
        for scope in self._registry.scopes():
            for name, counter in scope._counter_items():
                fq_name = scope.fully_qualified_name(name)
                tags = dict(scope._tags)
                identity = key_map(fq_name, tags)
                value = counter.snapshot()
                existing = counters.get(identity)
                if existing is not None:
                    # same name reached through different scopes; reporters see both deltas
                    value += existing.value
                counters[identity] = CounterSnapshot(name=fq_name, tags=tags, value=value)
            for name, gauge in scope._gauge_items():
                fq_name = scope.fully_qualified_name(name)
                tags = dict(scope._tags)
                gauges[key_map(fq_name, tags)] = GaugeSnapshot(
                    name=fq_name, tags=tags, value=gauge.value()
                )
        return Snapshot(counters=counters, gauges=gauges)

    def close(self) -> None:
        """Stop the report loop after one final flush pass; idempotent."""

        self._loop.close()


def _check_separator(separator: str) -> str:
    separator = separator or DEFAULT_SEPARATOR
    if not isinstance(separator, str) or RESERVED_CHARACTERS.intersection(separator):
        raise ConfigurationError(f"separator {separator!r} is not usable in metric identities")
    return separator


def new_root_scope(
    options: ScopeOptions | None = None,
    interval: float | timedelta | None = None,
    **overrides: Any,
) -> Scope:
    """Build a scope tree and start its report loop.

    ``interval`` is in seconds; ``None`` or ``0`` disables the timer so passes
    only run through ``report()`` and ``close()``. Keyword ``overrides`` replace
    fields of ``options``.
    """

    if options is None:
        options = ScopeOptions()
    if overrides:
        options = replace(options, **overrides)

    reporter = options.reporter
    if reporter is not None and not isinstance(reporter, StatsReporter):
        raise ConfigurationError(
            f"reporter {type(reporter).__name__} does not implement report_counter/report_gauge/flush"
        )

    separator = _check_separator(options.separator)
    prefix = validate_name(options.prefix, kind="prefix", allow_empty=True)
    tags = validate_tags(options.tags)

    registry = ScopeRegistry()
    loop = ReportLoop(registry, reporter, interval)
    identity = key_map(prefix, tags)
    root = Scope(prefix, tags, separator, registry, loop, identity)
    registry.get_or_create(identity, lambda: root)
    loop.start()
    return root
