"""HTTP introspection surface tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from statscope.agent import Scope
from statscope.main import create_app


@pytest.fixture()
def app(root: Scope) -> FastAPI:
    return create_app(root)


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    """Provide an `httpx.AsyncClient` bound to the app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client


@pytest.mark.asyncio
async def test_health_endpoint(async_client: AsyncClient) -> None:
    """Health route should report liveness and the report loop state."""
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": {"status": "healthy", "report_loop": "idle"}}


@pytest.mark.asyncio
async def test_snapshot_endpoint(async_client: AsyncClient, root: Scope) -> None:
    """Snapshot route should return counters and gauges keyed by identity."""
    root.counter("PollCount").inc(3)
    root.tagged({"host": "h1"}).gauge("Alloc").update(64.0)

    response = await async_client.get("/metrics/snapshot")

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["data"]["counters"]["PollCount+"] == {"name": "PollCount", "tags": {}, "value": 3}
    assert body["data"]["gauges"]["Alloc+host=h1"] == {"name": "Alloc", "tags": {"host": "h1"}, "value": 64.0}
    assert "taken_at" in body["data"]


@pytest.mark.asyncio
async def test_flush_endpoint_runs_pass(async_client: AsyncClient, root: Scope, reporter) -> None:
    """Flush route should run one pass and consume the reported deltas."""
    root.counter("PollCount").inc(2)

    response = await async_client.post("/metrics/flush")

    assert response.status_code == 200
    assert response.json() == {"ok": True, "data": {"counters": 1, "gauges": 0, "errors": 0}}
    assert reporter.counters == [("PollCount", {}, 2)]

    snapshot = (await async_client.get("/metrics/snapshot")).json()
    assert snapshot["data"]["counters"]["PollCount+"]["value"] == 0


@pytest.mark.asyncio
async def test_flush_after_close_conflicts(async_client: AsyncClient, root: Scope) -> None:
    """Flush route should answer 409 once the scope tree is closed."""
    root.close()

    response = await async_client.post("/metrics/flush")

    assert response.status_code == 409
    assert response.json()["detail"] == "Scope is closed"
