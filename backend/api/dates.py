import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from api.dependencies import get_store, validate_date_key
from config import settings
from services.change_feed import DateChange
from services.checked_day_store import CheckedDayStore
from services.store_backends import LoadFailure, RemoteTableBackend, WriteFailure

router = APIRouter(prefix="/dates", tags=["dates"])


class DateUpsertRequest(BaseModel):
    checked: bool


def _remote_backend(store: CheckedDayStore) -> RemoteTableBackend:
    backend = store.backend
    if not isinstance(backend, RemoteTableBackend):
        raise HTTPException(status_code=409, detail="The local storage backend has no shared table")
    return backend


@router.get("")
async def list_dates(store: CheckedDayStore = Depends(get_store)):
    """Select every persisted (date, checked) pair."""
    try:
        rows = await asyncio.to_thread(store.backend.fetch_all)
    except LoadFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return [{"date": key, "checked": rows[key]} for key in sorted(rows)]


@router.put("/{date_key}")
async def upsert_date(
    date_key: str,
    body: DateUpsertRequest,
    store: CheckedDayStore = Depends(get_store),
):
    """Upsert one row as another client would; subscribers are notified."""
    backend = _remote_backend(store)
    key = validate_date_key(date_key)
    try:
        change = await asyncio.to_thread(backend.upsert, key, body.checked)
    except WriteFailure as e:
        raise HTTPException(status_code=503, detail=str(e))
    return change.to_dict()


@router.get("/changes")
async def stream_changes(
    limit: Optional[int] = None,
    store: CheckedDayStore = Depends(get_store),
):
    """Server-Sent Events feed of date changes on the shared table."""
    backend = _remote_backend(store)
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[DateChange] = asyncio.Queue()

    async def event_stream():
        subscription = backend.subscribe(queue.put_nowait, loop=loop)
        sent = 0
        try:
            while limit is None or sent < limit:
                try:
                    change = await asyncio.wait_for(
                        queue.get(),
                        timeout=settings.SSE_KEEPALIVE_SECONDS,
                    )
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"data: {json.dumps(change.to_dict())}\n\n"
                sent += 1
        finally:
            subscription.close()

    return StreamingResponse(event_stream(), media_type="text/event-stream")
