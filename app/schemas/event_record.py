# app/schemas/event_record.py
from datetime import datetime
from app.services.device_store import EventStatus
from app.schemas.base import CamelModel


class EventRecordOut(CamelModel):
    id: str
    timestamp: datetime
    type: str
    status: EventStatus


class AttendanceOut(EventRecordOut):
    employee_id: str
    name: str
    time: str
