# app/routers/monitoring.py
"""Smart light + air quality — current readings and light control."""

from fastapi import APIRouter, Depends
from app.schemas.monitoring import LightControlIn, LightControlOut, MonitoringOut, SmartLightOut
from app.services.device_store import SetAutoMode, SetLightOn
from app.services.smart_office import SmartOffice, get_office
from app.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/monitoring", response_model=MonitoringOut, summary="Current light and air quality readings")
async def get_monitoring(office: SmartOffice = Depends(get_office)):
    """Live telemetry where fresh, local fallback values otherwise."""
    return MonitoringOut.model_validate(office.monitoring.refresh())


@router.post("/monitoring/light-control", response_model=LightControlOut, summary="Toggle auto mode / light")
async def light_control(body: LightControlIn, office: SmartOffice = Depends(get_office)):
    """
    autoMode switches between LDR-driven and manual control.
    lightOn is ignored while auto mode is on — the LDR threshold decides.
    """
    if body.auto_mode is not None:
        office.store.apply(SetAutoMode(body.auto_mode))
    if body.light_on is not None:
        office.store.apply(SetLightOn(body.light_on))

    light = office.monitoring.refresh().smart_light

    # Hardware follows manual changes and auto-mode toggles
    if body.auto_mode is not None or not light.auto_mode:
        await office.light_controller.set_light(light.light_on)

    logger.info(f"💡 Light: auto={light.auto_mode} on={light.light_on} ldr={light.ldr_value}")
    return LightControlOut(message="Light state updated", smart_light=SmartLightOut.model_validate(light))
