# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + telemetry channel + poll loops.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from starlette.concurrency import run_in_threadpool
from app.config import settings
from app.database import get_db
from app.services.poller import POLL_KEY_PREFIX
from app.services.smart_office import SmartOffice, get_office
from datetime import datetime

router = APIRouter()


def _check_database(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        return f"error: {str(e)}"


def _check_telemetry(office: SmartOffice) -> str:
    client = office.client
    if not client.enabled:
        return "disabled"
    params = {"results": 0}
    if client.api_key:
        params["api_key"] = client.api_key
    try:
        resp = requests.get(client.field_url(settings.LDR_FIELD), params=params, timeout=3)
        return "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        return "unreachable"
    except Exception as e:
        return f"error: {str(e)}"


@router.get("/health", summary="System health check")
async def health_check(db: Session = Depends(get_db), office: SmartOffice = Depends(get_office)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - ThingSpeak channel reachability
    - Which feature poll loops are running
    """
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": await run_in_threadpool(_check_database, db),
        "telemetry": await run_in_threadpool(_check_telemetry, office),
        "polling": sorted(k[len(POLL_KEY_PREFIX):] for k in office.scheduler.keys if k.startswith(POLL_KEY_PREFIX)),
    }
    if result["database"] != "ok" or result["telemetry"] not in ("ok", "disabled"):
        result["status"] = "degraded"
    return result
