# app/schemas/monitoring.py
from typing import Optional
from pydantic import StrictBool
from app.schemas.base import CamelModel


class SmartLightOut(CamelModel):
    auto_mode: bool
    light_on: bool
    ldr_value: float


class AirQualityOut(CamelModel):
    air_quality_index: float
    temperature: float


class AirQualityStatusOut(CamelModel):
    label: str      # Good | Moderate | Poor
    color: str      # green | yellow | red


class MonitoringOut(CamelModel):
    smart_light: SmartLightOut
    air_quality: AirQualityOut
    air_quality_status: AirQualityStatusOut


class LightControlIn(CamelModel):
    auto_mode: Optional[StrictBool] = None
    light_on: Optional[StrictBool] = None


class LightControlOut(CamelModel):
    message: str
    smart_light: SmartLightOut
