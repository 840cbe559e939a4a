# app/services/device_store.py
"""
In-memory device state store for the smart office.

Holds the mock device configuration (light, fire system, alert mode, gate),
the fallback air-quality reading, and two bounded logs (alert history and
RFID attendance), both newest first.

State only changes through apply(command) or the log helpers. There is a single
writer — the event loop — so no locking. Nothing is persisted: a restart
brings back the demo defaults.
"""

import itertools
import random
from collections import deque
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Iterator, Optional, Union
from app.config import settings
from app.services.scheduler import Scheduler
from app.utils.logger import get_logger

logger = get_logger(__name__)

GATE_CLOSE_KEY = "gate-close"
SCAN_NAMES = ("Emma Wilson", "David Brown", "Lisa Chen")


class EventStatus(str, Enum):
    ACTIVE = "Active"
    RESOLVED = "Resolved"
    VERIFIED = "Verified"
    DECLINED = "Declined"


class EventType:
    MOTION = "Motion Detected"
    UNAUTHORIZED_MOVEMENT = "Unauthorized Movement"
    FIRE = "Fire Detected"
    ACCESS_GRANTED = "Access Granted"
    ACCESS_DENIED = "Access Denied"
    RFID_ACCESS = "RFID Access"


@dataclass
class EventRecord:
    id: str
    timestamp: datetime
    type: str
    status: EventStatus


@dataclass
class AttendanceRecord(EventRecord):
    employee_id: str = ""
    name: str = ""
    time: str = ""           # display time, e.g. "08:30 AM"


@dataclass(frozen=True)
class DeviceState:
    light_auto_mode: bool = True
    light_on: bool = False
    ldr_value: float = 450
    fire_system_on: bool = True
    alert_mode: bool = True
    gate_open: bool = False


@dataclass(frozen=True)
class AirQualityReading:
    air_quality_index: float = 85
    temperature: float = 24     # °C


# ── Commands ──────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SetAutoMode:
    enabled: bool


@dataclass(frozen=True)
class SetLightOn:
    on: bool


@dataclass(frozen=True)
class SetFireSystemOn:
    on: bool


@dataclass(frozen=True)
class SetAlertMode:
    enabled: bool


@dataclass(frozen=True)
class TriggerScan:
    pass


Command = Union[SetAutoMode, SetLightOn, SetFireSystemOn, SetAlertMode, TriggerScan]


def light_should_be_on(ldr_value: float, threshold: Optional[float] = None) -> bool:
    """Auto-mode rule: dark room (low LDR reading) → light on."""
    if threshold is None:
        threshold = settings.LDR_THRESHOLD
    return ldr_value < threshold


class EventLog:
    """Bounded, newest-first record log. Appending past capacity drops the oldest record."""

    def __init__(self, capacity: int, records: Iterable[EventRecord] = ()):
        self.capacity = capacity
        self._records: deque = deque(records, maxlen=capacity)

    def append(self, record: EventRecord) -> EventRecord:
        self._records.appendleft(record)
        return record

    def find(self, record_id: str) -> Optional[EventRecord]:
        return next((r for r in self._records if r.id == record_id), None)

    def latest(self, type: Optional[str] = None, status: Optional[EventStatus] = None) -> Optional[EventRecord]:
        for record in self._records:
            if type is not None and record.type != type:
                continue
            if status is not None and record.status != status:
                continue
            return record
        return None

    def snapshot(self) -> list[EventRecord]:
        """Copies, newest first — callers can't mutate the log through them."""
        return [replace(r) for r in self._records]

    def __iter__(self) -> Iterator[EventRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


def _seed_alerts() -> list[EventRecord]:
    return [
        EventRecord("1", datetime(2025, 11, 18, 14, 32, 15, tzinfo=timezone.utc), EventType.MOTION, EventStatus.RESOLVED),
        EventRecord("2", datetime(2025, 11, 18, 13, 45, 22, tzinfo=timezone.utc), EventType.UNAUTHORIZED_MOVEMENT, EventStatus.RESOLVED),
        EventRecord("3", datetime(2025, 11, 18, 12, 18, 9, tzinfo=timezone.utc), EventType.MOTION, EventStatus.RESOLVED),
    ]


def _seed_attendance() -> list[AttendanceRecord]:
    def rec(rid, emp, name, hh, mm, time):
        return AttendanceRecord(rid, datetime(2025, 11, 18, hh, mm, tzinfo=timezone.utc), EventType.RFID_ACCESS,
                                EventStatus.VERIFIED, employee_id=emp, name=name, time=time)
    return [
        rec("1", "A1234", "John Smith", 8, 30, "08:30 AM"),
        rec("2", "A2345", "Sarah Johnson", 8, 45, "08:45 AM"),
        rec("3", "A3456", "Mike Davis", 9, 30, "09:30 AM"),
    ]


class DeviceStateStore:
    def __init__(
        self,
        scheduler: Optional[Scheduler] = None,
        state: Optional[DeviceState] = None,
        air_quality: Optional[AirQualityReading] = None,
        log_capacity: Optional[int] = None,
        gate_close_delay: Optional[float] = None,
        ldr_threshold: Optional[float] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
        seed_demo_data: bool = True,
    ):
        self.scheduler = scheduler or Scheduler()
        self.log_capacity = log_capacity or settings.EVENT_LOG_CAPACITY
        self.gate_close_delay = settings.GATE_CLOSE_DELAY_SECONDS if gate_close_delay is None else gate_close_delay
        self.ldr_threshold = settings.LDR_THRESHOLD if ldr_threshold is None else ldr_threshold
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()

        self._state = self._with_auto_rule(state or DeviceState())
        self.air_quality = air_quality or AirQualityReading()
        self.alerts = EventLog(self.log_capacity, _seed_alerts() if seed_demo_data else ())
        self.attendance = EventLog(self.log_capacity, _seed_attendance() if seed_demo_data else ())
        # Seed ids are 1..3; new records continue after them
        self._ids = itertools.count(4)
        self._gate_close_id: Optional[str] = None

    # ── Reads ────────────────────────────────────────────────────────────────
    def get(self) -> DeviceState:
        """Current state. DeviceState is frozen, so this is a safe snapshot."""
        return self._state

    def now(self) -> datetime:
        return self._clock()

    # ── Commands ─────────────────────────────────────────────────────────────
    def apply(self, command: Command) -> DeviceState:
        state = self._state

        if isinstance(command, SetAutoMode):
            state = replace(state, light_auto_mode=command.enabled)
        elif isinstance(command, SetLightOn):
            if state.light_auto_mode:
                logger.info(f"Manual light command ignored (auto mode on, LDR={state.ldr_value})")
            else:
                state = replace(state, light_on=command.on)
        elif isinstance(command, SetFireSystemOn):
            state = replace(state, fire_system_on=command.on)
        elif isinstance(command, SetAlertMode):
            state = replace(state, alert_mode=command.enabled)
        elif isinstance(command, TriggerScan):
            self.trigger_scan()
            return self._state
        else:
            raise TypeError(f"Unknown device command: {command!r}")

        self._state = self._with_auto_rule(state)
        logger.debug(f"Device state → {self._state}")
        return self._state

    def trigger_scan(self) -> AttendanceRecord:
        """
        Simulate an RFID card scan: log a random attendance record, open the gate,
        and schedule the gate to close after gate_close_delay. A newer scan supersedes
        the pending close of an older one.
        """
        now = self._clock()
        record = AttendanceRecord(
            id=self._next_id(),
            timestamp=now,
            type=EventType.RFID_ACCESS,
            status=EventStatus.VERIFIED,
            employee_id=f"A{self._rng.randint(1000, 9999)}",
            name=self._rng.choice(SCAN_NAMES),
            time=now.astimezone().strftime("%I:%M %p"),
        )
        self.attendance.append(record)
        self._state = replace(self._state, gate_open=True)

        self._gate_close_id = record.id
        self.scheduler.once(GATE_CLOSE_KEY, self.gate_close_delay, lambda: self._close_gate(record.id))
        logger.info(f"🪪 Access granted for {record.name} ({record.employee_id}) — gate open")
        return record

    def _close_gate(self, record_id: str):
        if self._gate_close_id != record_id:
            return
        self._gate_close_id = None
        self._state = replace(self._state, gate_open=False)
        logger.info(f"🚪 Gate closed (scan {record_id})")

    # ── Event log ────────────────────────────────────────────────────────────
    def log_event(self, type: str, status: EventStatus = EventStatus.ACTIVE) -> EventRecord:
        record = EventRecord(id=self._next_id(), timestamp=self._clock(), type=type, status=EventStatus(status))
        self.alerts.append(record)
        logger.warning(f"[ALERT][{record.status.value.upper()}] {record.type} (id={record.id})")
        return record

    def update_event_status(self, record_id: str, status: EventStatus) -> Optional[EventRecord]:
        """Change a logged record's status in place. Returns None if it was trimmed away."""
        record = self.alerts.find(record_id)
        if record is None:
            return None
        record.status = EventStatus(status)
        logger.info(f"[ALERT][{record.status.value.upper()}] {record.type} (id={record.id})")
        return record

    def latest_event(self, type: str, status: Optional[EventStatus] = None) -> Optional[EventRecord]:
        return self.alerts.latest(type=type, status=status)

    # ── Helpers ──────────────────────────────────────────────────────────────
    def _with_auto_rule(self, state: DeviceState) -> DeviceState:
        if not state.light_auto_mode:
            return state
        return replace(state, light_on=light_should_be_on(state.ldr_value, self.ldr_threshold))

    def _next_id(self) -> str:
        return str(next(self._ids))
