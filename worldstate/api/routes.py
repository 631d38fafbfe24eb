from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from worldstate.api.deps import get_identity, get_redis
from worldstate.api.models import (
    ChangeEntry,
    ChangesResponse,
    PlayerStatus,
    ReducerResponse,
    RowChangeModel,
    SessionResponse,
    SnapshotResponse,
    TableResponse,
)
from worldstate.core.events import WorldEvent
from worldstate.errors import InvariantViolation, NotFoundError, UniqueConstraintViolation, WorldBusyError
from worldstate.reducers import LifecycleReducerError, ReducerResult, dispatch_reducer
from worldstate.store import CHANGES_STREAM_KEY, TABLES, read_snapshot, read_table
from worldstate.streams import read_changes
from worldstate.websocket_hub import hub

router = APIRouter()
logger = logging.getLogger(__name__)

# Players live in one table with a status tag; clients see two views of it.
PLAYER_VIEWS: dict[str, PlayerStatus] = {
    "player": PlayerStatus.active,
    "logged_out_player": PlayerStatus.logged_out,
}


def _http_error(e: ValueError) -> HTTPException:
    if isinstance(e, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, (InvariantViolation, UniqueConstraintViolation)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(e, WorldBusyError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(e, LifecycleReducerError):
        code = status.HTTP_403_FORBIDDEN
    else:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return HTTPException(status_code=code, detail=str(e))


def _split_players(rows: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    return {view: [p for p in rows if p.get("status") == st.value] for view, st in PLAYER_VIEWS.items()}


async def _broadcast_commit(result: ReducerResult) -> None:
    if not result.changes:
        return
    event = WorldEvent.now(
        type="reducer_committed",
        reducer=result.reducer,
        sender=result.sender,
        payload={
            "tables": sorted({c.table for c in result.changes}),
            "offset": result.stream_ids[-1] if result.stream_ids else None,
        },
    )
    await hub.broadcast(event.as_message())


def _response(result: ReducerResult) -> ReducerResponse:
    return ReducerResponse(
        reducer=result.reducer,
        sender=result.sender,
        result=result.value_as_json(),
        changes=[RowChangeModel(**c.as_dict()) for c in result.changes],
    )


@router.websocket("/ws/world")
async def world_updates_ws(websocket: WebSocket, identity: str | None = None, r: redis.Redis = Depends(get_redis)) -> None:
    """Subscribe to commit notifications.

    With `?identity=...` the socket also drives the session lifecycle:
    connect on open (answered privately with a `session` message), disconnect
    on close.
    """

    await hub.subscribe(websocket, identity=identity)

    if identity:
        try:
            result = await run_in_threadpool(
                dispatch_reducer, r=r, sender=identity, reducer="connect", allow_lifecycle=True
            )
        except ValueError as e:
            await hub.unsubscribe(websocket)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
            return
        await hub.send_to(identity, {"type": "session", "identity": identity, "player": result.value_as_json()})
        await _broadcast_commit(result)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.unsubscribe(websocket)
    except Exception:
        await hub.unsubscribe(websocket)
        raise
    finally:
        if identity:
            try:
                result = await run_in_threadpool(
                    dispatch_reducer, r=r, sender=identity, reducer="disconnect", allow_lifecycle=True
                )
            except ValueError as e:
                logger.warning("[Disconnect] %s: %s", identity, e)
            else:
                await _broadcast_commit(result)


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/session/connect", response_model=SessionResponse)
async def connect_route(
    x_identity: str | None = Header(default=None),
    r: redis.Redis = Depends(get_redis),
) -> SessionResponse:
    # First-time callers get a fresh identity; keeping it is the client's job.
    identity = x_identity or uuid4().hex
    try:
        result = await run_in_threadpool(dispatch_reducer, r=r, sender=identity, reducer="connect", allow_lifecycle=True)
    except ValueError as e:
        raise _http_error(e) from e

    await _broadcast_commit(result)
    return SessionResponse(identity=identity, player=result.value)


@router.post("/session/disconnect", response_model=SessionResponse)
async def disconnect_route(
    identity: str = Depends(get_identity),
    r: redis.Redis = Depends(get_redis),
) -> SessionResponse:
    try:
        result = await run_in_threadpool(dispatch_reducer, r=r, sender=identity, reducer="disconnect", allow_lifecycle=True)
    except ValueError as e:
        raise _http_error(e) from e

    await _broadcast_commit(result)
    return SessionResponse(identity=identity, player=result.value)


@router.post("/reducers/{name}", response_model=ReducerResponse)
async def call_reducer_route(
    name: str,
    body: dict[str, Any] | None = None,
    identity: str = Depends(get_identity),
    r: redis.Redis = Depends(get_redis),
) -> ReducerResponse:
    try:
        result = await run_in_threadpool(dispatch_reducer, r=r, sender=identity, reducer=name, args=body or {})
    except ValueError as e:
        raise _http_error(e) from e

    await _broadcast_commit(result)
    return _response(result)


@router.get("/tables/{table}", response_model=TableResponse)
async def table_route(table: str, r: redis.Redis = Depends(get_redis)) -> TableResponse:
    if table in PLAYER_VIEWS:
        rows = _split_players(read_table(r=r, table="player"))[table]
    elif table in TABLES and table != "player":
        rows = read_table(r=r, table=table)
    else:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown table: {table}")
    return TableResponse(table=table, rows=rows)


@router.get("/snapshot", response_model=SnapshotResponse)
async def snapshot_route(r: redis.Redis = Depends(get_redis)) -> SnapshotResponse:
    """Every table at one commit point, plus the stream offset to resume `/changes` from."""

    offset, tables = read_snapshot(r=r)
    tables.update(_split_players(tables.pop("player")))
    return SnapshotResponse(offset=offset, tables=tables)


@router.get("/changes", response_model=ChangesResponse)
async def changes_route(after: str = "0-0", count: int = 100, r: redis.Redis = Depends(get_redis)) -> ChangesResponse:
    if count < 1 or count > 1000:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 1000")

    try:
        messages = read_changes(r=r, after=after, count=count)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return ChangesResponse(
        stream=CHANGES_STREAM_KEY,
        changes=[ChangeEntry(id=m.id, fields=m.fields) for m in messages],
    )
