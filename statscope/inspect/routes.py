"""Read-only snapshot access and manual flush trigger for a scope tree."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from statscope.agent.report_loop import LoopState
from statscope.agent.scope import Scope

router = APIRouter()


async def get_scope(request: Request) -> Scope:
    scope: Scope | None = getattr(request.app.state, "scope", None)
    if scope is None:
        raise RuntimeError("Metrics scope not configured on application state")
    return scope


@router.get("/snapshot")
async def get_snapshot(scope: Scope = Depends(get_scope)) -> JSONResponse:
    """Return unreported counter deltas and last gauge values."""

    snapshot = scope.snapshot()
    return JSONResponse({"ok": True, "data": snapshot.json_payload()})


@router.post("/flush")
def flush(scope: Scope = Depends(get_scope)) -> JSONResponse:
    # Sync handler: a pass may block on reporter I/O, so it runs in the threadpool.
    if scope.loop.state in (LoopState.CLOSING, LoopState.CLOSED):
        raise HTTPException(status_code=409, detail="Scope is closed")
    summary = scope.report()
    return JSONResponse({"ok": True, "data": summary.model_dump()})
