# app/schemas/access_safety.py
from typing import Optional
from pydantic import StrictBool
from app.schemas.base import CamelModel
from app.schemas.event_record import AttendanceOut


class AccessSafetyOut(CamelModel):
    gate_open: bool
    fire_system_on: bool
    fire_detected: bool
    attendance: list[AttendanceOut]


class RfidScanOut(CamelModel):
    message: str
    new_record: AttendanceOut
    gate_open: bool


class FireSystemIn(CamelModel):
    fire_system_on: Optional[StrictBool] = None


class FireSystemOut(CamelModel):
    message: str
    fire_system_on: bool
