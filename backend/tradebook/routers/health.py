# tradebook/routers/health.py
from __future__ import annotations

import logging
import time
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tradebook.infra import metrics as m

router = APIRouter(prefix="/api", tags=["health"])
log = logging.getLogger(__name__)


def _gauge_value_safe(metric_obj: Any) -> float:
    """Current value of a prometheus Gauge; 0.0 if it cannot be read."""
    try:
        return float(metric_obj._value.get())  # type: ignore[attr-defined]
    except (AttributeError, TypeError, ValueError):
        return 0.0


@router.get("/ping")
async def ping() -> dict:
    return {"ok": True}


@router.get("/healthz")
def healthz(request: Request):
    """
    DB round-trip plus the time of the last finished rebuild.
    200 when the database answers, 503 otherwise.
    """
    payload: Dict[str, Any] = {"ok": True, "db": "ok", "warnings": []}

    t0 = time.perf_counter()
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        payload["db_latency_ms"] = round((time.perf_counter() - t0) * 1000, 2)
    except SQLAlchemyError as e:
        log.error(f"healthz: database check failed: {e}")
        payload["ok"] = False
        payload["db"] = "error"
        payload["warnings"].append(f"database: {e.__class__.__name__}")

    last_ts = _gauge_value_safe(m.rebuild_last_finished_ts)
    payload["last_rebuild_ts"] = last_ts or None

    code = status.HTTP_200_OK if payload["ok"] else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(payload, status_code=code)
