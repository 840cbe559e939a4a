# app/schemas/alerts.py
from typing import Optional
from pydantic import StrictBool
from app.services.device_store import EventStatus
from app.schemas.base import CamelModel
from app.schemas.event_record import EventRecordOut


class AlertsOut(CamelModel):
    alert_mode: bool
    motion_detected: bool
    alert_history: list[EventRecordOut]


class AlertModeIn(CamelModel):
    alert_mode: Optional[StrictBool] = None


class AlertModeOut(CamelModel):
    message: str
    alert_mode: bool


class LogMotionIn(CamelModel):
    type: Optional[str] = None
    status: Optional[EventStatus] = None


class LogMotionOut(CamelModel):
    message: str
    new_alert: EventRecordOut
