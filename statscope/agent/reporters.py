"""Batching reporters that sit on the far side of the ``StatsReporter`` contract."""

from __future__ import annotations

import abc
import logging
import threading
from typing import Mapping

from statscope.agent.schemas import MetricRecord
from statscope.lib.logger import get_logger

logger = get_logger(__name__)


class BatchReporter(abc.ABC):
    """Collect observations during a pass and hand them over in one batch on ``flush``.

    The buffer is swapped out before ``send`` runs, so a failing ``send`` drops
    that batch; its exception propagates to the caller of ``flush``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._batch: list[MetricRecord] = []
        self.flush_count = 0

    def report_counter(self, name: str, tags: Mapping[str, str], value: int) -> None:
        record = MetricRecord(id=name, type="counter", tags=dict(tags), delta=value)
        with self._lock:
            self._batch.append(record)

    def report_gauge(self, name: str, tags: Mapping[str, str], value: float) -> None:
        record = MetricRecord(id=name, type="gauge", tags=dict(tags), value=value)
        with self._lock:
            self._batch.append(record)

    def pending(self) -> list[MetricRecord]:
        with self._lock:
            return list(self._batch)

    def flush(self) -> None:
        with self._lock:
            batch = self._batch
            self._batch = []
            self.flush_count += 1
        if not batch:
            return
        self.send(batch)

    @abc.abstractmethod
    def send(self, batch: list[MetricRecord]) -> None:
        """Deliver one non-empty batch."""


class LoggingReporter(BatchReporter):
    """Write every batch as a single structured log event."""

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        super().__init__()
        self._log = log or logger
        self._level = level

    def send(self, batch: list[MetricRecord]) -> None:
        self._log.log(
            self._level,
            "statscope.reporter.batch",
            extra={
                "flush_number": self.flush_count,
                "size": len(batch),
                "metrics": [record.model_dump(mode="json", by_alias=True, exclude_none=True) for record in batch],
            },
        )
