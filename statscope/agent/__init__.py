"""Process-local metrics scopes with periodic delta reporting."""

from statscope.agent.errors import ConfigurationError, InvalidTagError, ReporterError, StatScopeError
from statscope.agent.interfaces import CounterHandle, GaugeHandle, StatsReporter
from statscope.agent.keymap import key_map
from statscope.agent.registry import ScopeRegistry
from statscope.agent.report_loop import LoopState, ReportLoop
from statscope.agent.reporters import BatchReporter, LoggingReporter
from statscope.agent.schemas import CounterSnapshot, FlushSummary, GaugeSnapshot, MetricRecord, Snapshot
from statscope.agent.scope import DEFAULT_SEPARATOR, Scope, ScopeOptions, new_root_scope
from statscope.agent.stats import Counter, Gauge

__all__ = [
    "BatchReporter",
    "ConfigurationError",
    "Counter",
    "CounterHandle",
    "CounterSnapshot",
    "DEFAULT_SEPARATOR",
    "FlushSummary",
    "Gauge",
    "GaugeHandle",
    "GaugeSnapshot",
    "InvalidTagError",
    "LoggingReporter",
    "LoopState",
    "MetricRecord",
    "ReportLoop",
    "ReporterError",
    "Scope",
    "ScopeOptions",
    "ScopeRegistry",
    "Snapshot",
    "StatScopeError",
    "StatsReporter",
    "key_map",
    "new_root_scope",
]
