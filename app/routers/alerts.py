# app/routers/alerts.py
"""PIR motion alerts — alert mode switch and alert history."""

from fastapi import APIRouter, Depends, HTTPException
from app.schemas.alerts import AlertModeIn, AlertModeOut, AlertsOut, LogMotionIn, LogMotionOut
from app.schemas.event_record import EventRecordOut
from app.services.device_store import EventStatus, EventType, SetAlertMode
from app.services.smart_office import SmartOffice, get_office

router = APIRouter()


@router.get("/alerts", response_model=AlertsOut, summary="Alert mode, motion status and history")
async def get_alerts(office: SmartOffice = Depends(get_office)):
    """History is newest first and bounded; motionDetected comes from the PIR telemetry field."""
    return AlertsOut.model_validate(office.alerts.refresh())


@router.post("/alerts/toggle-mode", response_model=AlertModeOut, summary="Arm / disarm security alert mode")
async def toggle_alert_mode(body: AlertModeIn, office: SmartOffice = Depends(get_office)):
    if body.alert_mode is None:
        raise HTTPException(status_code=400, detail="Invalid parameter for alertMode")
    state = office.store.apply(SetAlertMode(body.alert_mode))
    return AlertModeOut(
        message=f"Security alert mode acknowledged as {'ON' if state.alert_mode else 'OFF'}",
        alert_mode=state.alert_mode,
    )


@router.post("/alerts/log-motion", response_model=LogMotionOut, summary="Manually log an alert")
async def log_motion(body: LogMotionIn, office: SmartOffice = Depends(get_office)):
    """For simulation — appends a record to the alert history."""
    record = office.store.log_event(body.type or EventType.MOTION, body.status or EventStatus.ACTIVE)
    return LogMotionOut(message="Alert logged", new_alert=EventRecordOut.model_validate(record))
