"""Pydantic models for snapshots, flush summaries and reporter batches."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CounterSnapshot(BaseModel):
    """Counter total accumulated since the previous flush pass."""

    model_config = ConfigDict(frozen=True)

    name: str
    tags: dict[str, str] = Field(default_factory=dict)
    value: int = 0


class GaugeSnapshot(BaseModel):
    """Last value written to a gauge."""

    model_config = ConfigDict(frozen=True)

    name: str
    tags: dict[str, str] = Field(default_factory=dict)
    value: float = 0.0


class Snapshot(BaseModel):
    """Point-in-time view of every metric in a scope tree, keyed by identity."""

    model_config = ConfigDict(frozen=True)

    counters: dict[str, CounterSnapshot] = Field(default_factory=dict)
    gauges: dict[str, GaugeSnapshot] = Field(default_factory=dict)
    taken_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))

    def json_payload(self) -> dict[str, object]:
        return self.model_dump(mode="json")


class FlushSummary(BaseModel):
    """Outcome of a single flush pass."""

    model_config = ConfigDict(frozen=True)

    counters: int = 0
    gauges: int = 0
    errors: int = 0

    @property
    def emitted(self) -> int:
        return self.counters + self.gauges


class MetricRecord(BaseModel):
    """One reported observation as batched by ``BatchReporter``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    mtype: Literal["counter", "gauge"] = Field(..., alias="type")
    tags: dict[str, str] = Field(default_factory=dict)
    delta: int | None = None
    value: float | None = None
