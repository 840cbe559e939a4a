# app/services/reconciler.py
"""
Poll-tick reconciliation: local device state ⊕ remote telemetry → view model.

One reconciler per dashboard feature (monitoring, alerts, access-safety). Each
instance keeps its own previous-tick flags and open event ids; instances share
nothing but the store and the telemetry client.

Per tick:
  1. fetch every field the feature needs (concurrently; a failed field is None)
  2. read the device state
  3. per signal: triggered = armed(state) AND predicate(value) AND sample is recent
  4. rising edge  → append an event record
     falling edge → set the record opened by the rise to its cleared status
  5. compose the view model

Ticks are numbered. A tick that finishes after a newer one was already applied
is dropped, and so is any tick finishing after stop().
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional
from app.config import settings
from app.services.device_store import (
    DeviceState, DeviceStateStore, EventStatus, EventType, light_should_be_on,
)
from app.services.telemetry_client import TelemetryClient, TelemetrySample, TelemetryUnavailable, is_recent
from app.utils.logger import get_logger

logger = get_logger(__name__)

Samples = dict[int, Optional[TelemetrySample]]


def _positive(value: float) -> bool:
    return value > 0


def _negative(value: float) -> bool:
    return value < 0


def _always(state: DeviceState) -> bool:
    return True


@dataclass(frozen=True)
class Signal:
    """A boolean condition read from one telemetry field."""
    name: str
    field_id: int
    event_type: str
    opened_status: EventStatus = EventStatus.ACTIVE
    cleared_status: Optional[EventStatus] = EventStatus.RESOLVED   # None = record is final once logged
    armed: Callable[[DeviceState], bool] = _always
    predicate: Callable[[float], bool] = _positive


# ── View models ──────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SmartLightView:
    auto_mode: bool
    light_on: bool
    ldr_value: float


@dataclass(frozen=True)
class AirQualityView:
    air_quality_index: float
    temperature: float


@dataclass(frozen=True)
class AirQualityStatus:
    label: str
    color: str


@dataclass(frozen=True)
class MonitoringView:
    smart_light: SmartLightView
    air_quality: AirQualityView
    air_quality_status: AirQualityStatus


@dataclass(frozen=True)
class AlertsView:
    alert_mode: bool
    motion_detected: bool
    alert_history: list = field(default_factory=list)


@dataclass(frozen=True)
class AccessSafetyView:
    gate_open: bool
    fire_system_on: bool
    fire_detected: bool
    attendance: list = field(default_factory=list)


def air_quality_status(aqi: float) -> AirQualityStatus:
    if aqi < settings.AQI_GOOD_BELOW:
        return AirQualityStatus("Good", "green")
    if aqi < settings.AQI_MODERATE_BELOW:
        return AirQualityStatus("Moderate", "yellow")
    return AirQualityStatus("Poor", "red")


class FeatureReconciler:
    name = "feature"
    signals: tuple = ()
    numeric_fields: tuple = ()

    def __init__(
        self,
        store: DeviceStateStore,
        client: TelemetryClient,
        recency_threshold: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.client = client
        self.recency_threshold = settings.RECENCY_THRESHOLD_SECONDS if recency_threshold is None else recency_threshold
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self.view = None
        self._samples: Samples = {}
        self._triggered: dict[str, bool] = {}
        self._open_events: dict[str, str] = {}
        self._unavailable: set[int] = set()
        self._issued_seq = 0
        self._applied_seq = 0
        self._active = True

    # ── Lifecycle ────────────────────────────────────────────────────────────
    def stop(self):
        """Results of ticks still in flight are discarded from now on."""
        self._active = False

    def start(self):
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def field_ids(self) -> list[int]:
        ids = [s.field_id for s in self.signals] + list(self.numeric_fields)
        return list(dict.fromkeys(ids))

    # ── Tick ─────────────────────────────────────────────────────────────────
    async def tick(self):
        """Fetch, reconcile and publish one view. Returns the current view."""
        self._issued_seq += 1
        seq = self._issued_seq

        samples = await self.fetch_samples()

        if not self._active:
            logger.debug(f"[{self.name}] tick #{seq} finished after stop — discarded")
            return self.view
        if seq < self._applied_seq:
            logger.debug(f"[{self.name}] tick #{seq} superseded by #{self._applied_seq} — discarded")
            return self.view
        self._applied_seq = seq

        previous = self.view
        view = self.reconcile(samples, self._clock())
        if view != previous:
            await self.on_view_changed(previous, view)
        return view

    async def fetch_samples(self) -> Samples:
        if not self.client.enabled:
            return {}
        fields = self.field_ids
        results = await asyncio.gather(*(self._fetch_one(f) for f in fields))
        return dict(zip(fields, results))

    async def _fetch_one(self, field_id: int) -> Optional[TelemetrySample]:
        try:
            sample = await self.client.fetch_latest(field_id)
        except TelemetryUnavailable as e:
            if field_id not in self._unavailable:
                self._unavailable.add(field_id)
                logger.warning(f"⚠️  [{self.name}] telemetry unavailable ({e}) — using safe defaults")
            return None
        if field_id in self._unavailable:
            self._unavailable.discard(field_id)
            logger.info(f"✅ [{self.name}] telemetry field{field_id} back online")
        return sample

    # ── Reconcile ────────────────────────────────────────────────────────────
    def reconcile(self, samples: Samples, now: datetime):
        """Merge samples with the current device state. Runs edge detection."""
        self._samples = dict(samples)
        state = self.store.get()
        flags = {}
        for signal in self.signals:
            triggered = signal.armed(state) and self._reads(signal, samples.get(signal.field_id), now)
            self._detect_edge(signal, triggered)
            flags[signal.name] = triggered
        self.view = self.compose(state, flags, samples, now)
        return self.view

    def refresh(self):
        """
        Compose a view from the last fetched samples and the current state, without
        network I/O. Edges, open events and the last tick's view are left to the poll ticks.
        """
        now = self._clock()
        state = self.store.get()
        flags = {
            signal.name: signal.armed(state) and self._reads(signal, self._samples.get(signal.field_id), now)
            for signal in self.signals
        }
        return self.compose(state, flags, self._samples, now)

    def _reads(self, signal: Signal, sample: Optional[TelemetrySample], now: datetime) -> bool:
        if sample is None or not is_recent(sample, now, self.recency_threshold):
            return False
        return signal.predicate(sample.value)

    def _detect_edge(self, signal: Signal, triggered: bool):
        was = self._triggered.get(signal.name, False)
        self._triggered[signal.name] = triggered

        if triggered and not was:
            record = self.store.log_event(signal.event_type, signal.opened_status)
            if signal.cleared_status is not None:
                self._open_events[signal.name] = record.id
        elif was and not triggered:
            record_id = self._open_events.pop(signal.name, None)
            if record_id is None:
                return
            if self.store.update_event_status(record_id, signal.cleared_status) is None:
                logger.debug(f"[{self.name}] event {record_id} already trimmed from the log")

    def numeric(self, samples: Samples, field_id: int, fallback: float, now: datetime) -> float:
        """Live reading if a recent sample exists, else the local fallback."""
        sample = samples.get(field_id)
        if sample is None or not is_recent(sample, now, self.recency_threshold):
            return fallback
        return sample.value

    def compose(self, state: DeviceState, flags: dict, samples: Samples, now: datetime):
        raise NotImplementedError

    async def on_view_changed(self, previous, view):
        """Hook for side effects driven by a changed view."""


class MonitoringReconciler(FeatureReconciler):
    name = "monitoring"

    def __init__(self, *args, light_controller=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.light_controller = light_controller
        self.numeric_fields = (settings.LDR_FIELD, settings.AQI_FIELD, settings.TEMPERATURE_FIELD)

    def compose(self, state, flags, samples, now) -> MonitoringView:
        fallback = self.store.air_quality
        ldr = self.numeric(samples, settings.LDR_FIELD, state.ldr_value, now)
        light_on = light_should_be_on(ldr, self.store.ldr_threshold) if state.light_auto_mode else state.light_on
        aqi = self.numeric(samples, settings.AQI_FIELD, fallback.air_quality_index, now)
        temperature = self.numeric(samples, settings.TEMPERATURE_FIELD, fallback.temperature, now)
        return MonitoringView(
            smart_light=SmartLightView(auto_mode=state.light_auto_mode, light_on=light_on, ldr_value=ldr),
            air_quality=AirQualityView(air_quality_index=aqi, temperature=temperature),
            air_quality_status=air_quality_status(aqi),
        )

    async def on_view_changed(self, previous, view):
        # Auto mode follows the live LDR; push the change to the light hardware
        if self.light_controller is None or previous is None:
            return
        if not view.smart_light.auto_mode:
            return
        if previous.smart_light.light_on != view.smart_light.light_on:
            await self.light_controller.set_light(view.smart_light.light_on)


class AlertsReconciler(FeatureReconciler):
    name = "alerts"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.signals = (
            Signal("motion", settings.MOTION_FIELD, EventType.UNAUTHORIZED_MOVEMENT,
                   cleared_status=EventStatus.RESOLVED, armed=lambda s: s.alert_mode),
        )

    def compose(self, state, flags, samples, now) -> AlertsView:
        return AlertsView(
            alert_mode=state.alert_mode,
            motion_detected=flags["motion"],
            alert_history=self.store.alerts.snapshot(),
        )


class AccessSafetyReconciler(FeatureReconciler):
    name = "access-safety"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.signals = (
            Signal("fire", settings.FIRE_FIELD, EventType.FIRE,
                   cleared_status=EventStatus.RESOLVED, armed=lambda s: s.fire_system_on),
            Signal("access", settings.RFID_FIELD, EventType.ACCESS_GRANTED,
                   cleared_status=EventStatus.VERIFIED),
            Signal("access_denied", settings.RFID_FIELD, EventType.ACCESS_DENIED,
                   opened_status=EventStatus.DECLINED, cleared_status=None, predicate=_negative),
        )

    def compose(self, state, flags, samples, now) -> AccessSafetyView:
        return AccessSafetyView(
            gate_open=state.gate_open or flags["access"],
            fire_system_on=state.fire_system_on,
            fire_detected=flags["fire"],
            attendance=self.store.attendance.snapshot(),
        )
