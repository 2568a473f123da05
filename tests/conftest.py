"""Pytest fixtures for statscope tests."""

from __future__ import annotations

import os
import threading
from collections.abc import Callable, Iterator
from typing import Mapping

import pytest

os.environ.setdefault("REPORT_INTERVAL", "0")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from statscope.agent import Scope, ScopeOptions, new_root_scope
from statscope.config import get_settings


class RecordingReporter:
    """Reporter double that remembers every call it receives."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.counters: list[tuple[str, dict[str, str], int]] = []
        self.gauges: list[tuple[str, dict[str, str], float]] = []
        self.flushes = 0
        self.closes = 0
        self.flushed = threading.Event()

    def report_counter(self, name: str, tags: Mapping[str, str], value: int) -> None:
        with self._lock:
            self.counters.append((name, dict(tags), value))

    def report_gauge(self, name: str, tags: Mapping[str, str], value: float) -> None:
        with self._lock:
            self.gauges.append((name, dict(tags), value))

    def flush(self) -> None:
        with self._lock:
            self.flushes += 1
        self.flushed.set()

    def close(self) -> None:
        self.closes += 1

    def counter_total(self, name: str) -> int:
        with self._lock:
            return sum(value for metric, _, value in self.counters if metric == name)


@pytest.fixture()
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture()
def make_reporter() -> Callable[[], RecordingReporter]:
    return RecordingReporter


@pytest.fixture()
def root(reporter: RecordingReporter) -> Iterator[Scope]:
    """Root scope without a timer; closed after the test."""

    scope = new_root_scope(ScopeOptions(reporter=reporter))
    yield scope
    scope.close()


@pytest.fixture(autouse=True)
def reset_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
