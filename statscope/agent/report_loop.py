"""Timed flush driver for a scope tree."""

from __future__ import annotations

import threading
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING

from statscope.agent.errors import ConfigurationError, ReporterError
from statscope.agent.interfaces import StatsReporter
from statscope.agent.schemas import FlushSummary
from statscope.lib.logger import get_logger

if TYPE_CHECKING:
    from statscope.agent.registry import ScopeRegistry

logger = get_logger(__name__)

THREAD_NAME = "statscope-report-loop"


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CLOSING = "closing"
    CLOSED = "closed"


def interval_seconds(interval: float | timedelta | None) -> float:
    """Normalize a report interval to seconds; ``0`` means no timer."""

    if interval is None:
        return 0.0
    if isinstance(interval, timedelta):
        seconds = interval.total_seconds()
    else:
        seconds = float(interval)
    if seconds < 0:
        raise ConfigurationError(f"report interval must not be negative, got {seconds}")
    return seconds


class ReportLoop:
    """Drives flush passes over a registry, on a timer and on demand.

    A single lock serializes passes and state transitions. Reporter failures
    inside a pass are logged and counted; the consumed deltas and dirty values
    are dropped rather than retried.
    """

    def __init__(
        self,
        registry: ScopeRegistry,
        reporter: StatsReporter | None,
        interval: float | timedelta | None = None,
    ) -> None:
        self._registry = registry
        self._reporter = reporter
        self._interval = interval_seconds(interval)
        self._lock = threading.Lock()
        self._quit = threading.Event()
        self._thread: threading.Thread | None = None
        self._state = LoopState.IDLE
        self._passes = 0
        self._pass_owner: int | None = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def passes(self) -> int:
        """Number of completed flush passes that reached the reporter."""

        return self._passes

    @property
    def reporter(self) -> StatsReporter | None:
        return self._reporter

    def start(self) -> None:
        """Start the timer thread when an interval is configured."""

        with self._lock:
            if self._state is not LoopState.IDLE:
                return
            if self._interval <= 0:
                logger.info("statscope.report_loop.manual", extra={"interval": self._interval})
                return
            self._thread = threading.Thread(target=self._run, name=THREAD_NAME, daemon=True)
            self._state = LoopState.RUNNING
            self._thread.start()
        logger.info("statscope.report_loop.started", extra={"interval": self._interval})

    def _run(self) -> None:
        while not self._quit.wait(self._interval):
            try:
                self.report()
            except ReporterError:
                # logged by _finish_close
                return

    def report(self) -> FlushSummary:
        """Run one flush pass now; a no-op once the loop is closing or closed."""

        if self._pass_owner == threading.get_ident():
            return FlushSummary()
        with self._lock:
            if self._state in (LoopState.CLOSING, LoopState.CLOSED):
                return FlushSummary()
            summary = self._flush_locked()
            if self._state is not LoopState.CLOSING:
                return summary
            # close() was called by the reporter during this pass
            final = self._flush_locked()
            self._state = LoopState.CLOSED
        self._finish_close(final)
        return summary

    def close(self) -> None:
        """Stop the timer, run the final flush pass and close the reporter.

        Waits for an in-flight pass to finish. Calls after the first return
        immediately.

        When called from inside a pass on the same thread, the close is
        deferred: the running pass finishes, then the final pass runs before
        the outer ``report()`` returns.
        """

        if self._pass_owner == threading.get_ident():
            if self._state in (LoopState.IDLE, LoopState.RUNNING):
                self._state = LoopState.CLOSING
                self._quit.set()
            return
        with self._lock:
            if self._state in (LoopState.CLOSING, LoopState.CLOSED):
                return
            self._state = LoopState.CLOSING
            self._quit.set()
            summary = self._flush_locked()
            self._state = LoopState.CLOSED
        self._finish_close(summary)

    def _finish_close(self, summary: FlushSummary) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.info("statscope.report_loop.closed", extra=summary.model_dump())

        closer = getattr(self._reporter, "close", None)
        if callable(closer):
            try:
                closer()
            except Exception as exc:
                logger.warning("statscope.report.close_failed", exc_info=True)
                raise ReporterError("reporter failed to close") from exc

    def _flush_locked(self) -> FlushSummary:
        reporter = self._reporter
        if reporter is None:
            return FlushSummary()

        self._pass_owner = threading.get_ident()
        try:
            return self._flush_pass(reporter)
        finally:
            self._pass_owner = None

    def _flush_pass(self, reporter: StatsReporter) -> FlushSummary:
        counters = gauges = errors = 0
        for scope in self._registry.scopes():
            c, g, e = scope._report(reporter)
            counters += c
            gauges += g
            errors += e

        try:
            reporter.flush()
        except Exception:
            errors += 1
            logger.warning(
                "statscope.report.flush_failed",
                exc_info=True,
                extra={"counters": counters, "gauges": gauges},
            )

        self._passes += 1
        summary = FlushSummary(counters=counters, gauges=gauges, errors=errors)
        logger.debug("statscope.report.pass", extra=summary.model_dump() | {"pass_number": self._passes})
        return summary
