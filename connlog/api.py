from __future__ import annotations
import logging, time
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from connlog.errors import StorageError, ValidationError
from connlog.service import EventLog, build_event_log

logger = logging.getLogger("connlog.api")

app = FastAPI(title="connlog API", version="0.1.0")

_event_log: Optional[EventLog] = None


def get_event_log() -> EventLog:
    global _event_log
    if _event_log is None:
        _event_log = build_event_log()
    return _event_log


class LogEventBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account_id: str = Field(..., alias="accountId")
    event: str
    details: Optional[str] = None


@app.exception_handler(ValidationError)
async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StorageError)
async def _storage_error(_: Request, exc: StorageError) -> JSONResponse:
    logger.warning("storage failure: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"status": "ok", "time": time.time(), "events": get_event_log().store.count()}


@app.post("/events")
def log_event(body: LogEventBody) -> Dict[str, Any]:
    event_id = get_event_log().log(body.account_id, body.event, body.details)
    return {"id": event_id}


@app.get("/events/recent")
def recent(
    account_id: str = Query(..., alias="accountId", description="Owning account"),
    limit: Optional[int] = Query(None, description="Maximum events; defaults to 50"),
) -> List[Dict[str, Any]]:
    return [event.to_dict() for event in get_event_log().get_recent(account_id, limit)]


@app.get("/events/by-event")
def by_event(
    account_id: str = Query(..., alias="accountId", description="Owning account"),
    event: str = Query(..., description="Exact event type to match"),
    limit: Optional[int] = Query(None, description="Maximum events; defaults to 20"),
) -> List[Dict[str, Any]]:
    return [item.to_dict() for item in get_event_log().get_by_event(account_id, event, limit)]


@app.post("/events/clear-old")
def clear_old(
    days_to_keep: Optional[float] = Query(None, alias="daysToKeep", description="Retention window in days"),
) -> Dict[str, Any]:
    """Global maintenance sweep; not scoped to any account."""
    return get_event_log().clear_old(days_to_keep).to_dict()


@app.delete("/accounts/{account_id}/events")
def purge_account(account_id: str) -> Dict[str, Any]:
    return get_event_log().purge_account(account_id).to_dict()
