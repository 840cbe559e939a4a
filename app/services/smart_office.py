# app/services/smart_office.py
"""
The smart office service instance: one device store, one telemetry client, one
scheduler and the three feature reconcilers. Created once per app and stored on
app.state; request handlers get it through the get_office dependency.
"""

from datetime import datetime
from typing import Callable, Optional
from fastapi import Request
from app.services.device_store import DeviceStateStore
from app.services.hardware_service import LightController
from app.services.reconciler import AccessSafetyReconciler, AlertsReconciler, MonitoringReconciler
from app.services.scheduler import Scheduler
from app.services.telemetry_client import TelemetryClient


class SmartOffice:
    def __init__(
        self,
        store: Optional[DeviceStateStore] = None,
        client: Optional[TelemetryClient] = None,
        light_controller: Optional[LightController] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.scheduler = scheduler or (store.scheduler if store else Scheduler())
        self.store = store or DeviceStateStore(scheduler=self.scheduler, clock=clock)
        self.client = client or TelemetryClient.from_settings()
        self.light_controller = light_controller or LightController.from_settings()

        self.monitoring = MonitoringReconciler(self.store, self.client, clock=clock,
                                               light_controller=self.light_controller)
        self.alerts = AlertsReconciler(self.store, self.client, clock=clock)
        self.access_safety = AccessSafetyReconciler(self.store, self.client, clock=clock)

    @property
    def reconcilers(self) -> dict:
        return {r.name: r for r in (self.monitoring, self.alerts, self.access_safety)}

    async def close(self):
        for reconciler in self.reconcilers.values():
            reconciler.stop()
        await self.scheduler.shutdown()


def get_office(request: Request) -> SmartOffice:
    """FastAPI dependency — the app's SmartOffice instance."""
    return request.app.state.office
