# app/routers/access_safety.py
"""RFID access gate + fire alarm system."""

from fastapi import APIRouter, Depends, HTTPException
from app.schemas.access_safety import AccessSafetyOut, FireSystemIn, FireSystemOut, RfidScanOut
from app.schemas.base import MessageOut
from app.schemas.event_record import AttendanceOut
from app.services.device_store import SetFireSystemOn
from app.services.smart_office import SmartOffice, get_office

router = APIRouter()


@router.get("/access-safety", response_model=AccessSafetyOut, summary="Gate, fire system and attendance")
async def get_access_safety(office: SmartOffice = Depends(get_office)):
    return AccessSafetyOut.model_validate(office.access_safety.refresh())


@router.post("/access-safety/rfid-scan", response_model=RfidScanOut, summary="Simulate an RFID card scan")
async def rfid_scan(office: SmartOffice = Depends(get_office)):
    """Logs a random attendance record and opens the gate; it closes by itself after a few seconds."""
    record = office.store.trigger_scan()
    view = office.access_safety.refresh()
    return RfidScanOut(
        message=f"Access granted for {record.name}.",
        new_record=AttendanceOut.model_validate(record),
        gate_open=view.gate_open,
    )


@router.post("/access-safety/fire-test", response_model=MessageOut, summary="Signal a fire detection test")
async def fire_test(office: SmartOffice = Depends(get_office)):
    """The detection itself arrives through the fire telemetry field on a later poll."""
    if not office.store.get().fire_system_on:
        raise HTTPException(status_code=400, detail="Fire system is inactive.")
    return MessageOut(message="Fire detection test signal sent. Status update expected on next poll.")


@router.post("/access-safety/fire-system-toggle", response_model=FireSystemOut, summary="Enable / disable fire system")
async def fire_system_toggle(body: FireSystemIn, office: SmartOffice = Depends(get_office)):
    if body.fire_system_on is None:
        raise HTTPException(status_code=400, detail="Invalid parameter for fireSystemOn")
    state = office.store.apply(SetFireSystemOn(body.fire_system_on))
    return FireSystemOut(
        message=f"Fire system set to {'Active' if state.fire_system_on else 'Inactive'}",
        fire_system_on=state.fire_system_on,
    )
