# app/services/telemetry_client.py
"""
Telemetry client — reads sensor fields from a ThingSpeak channel.

Endpoint: GET {base}/channels/{channel}/fields/{field}.json?api_key=&results=N
Response: { "channel": {...}, "feeds": [ { "created_at": "...Z", "field6": "1" }, ... ] }

Every failure (network, timeout, non-2xx, malformed payload) is reported as a single
TelemetryUnavailable. Callers treat that as the safe/false state — there is no retry here,
the next poll tick is the retry.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import httpx
from app.config import settings
from app.utils.json_parser import safe_parse_json, get_feeds, parse_timestamp, parse_number
from app.utils.logger import get_logger

logger = get_logger(__name__)

_START_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_RECENT_RESULTS = 8000   # ThingSpeak hard limit per request


class TelemetryUnavailable(Exception):
    """Remote telemetry could not be read for a field."""

    def __init__(self, field_id: int, reason: str):
        super().__init__(f"field{field_id}: {reason}")
        self.field_id = field_id
        self.reason = reason


@dataclass(frozen=True)
class TelemetrySample:
    field_id: int
    value: float
    captured_at: datetime   # aware, UTC


def sample_age(sample: TelemetrySample, now: datetime) -> timedelta:
    return now - sample.captured_at


def is_recent(sample: TelemetrySample, now: datetime, threshold_seconds: float) -> bool:
    """True when the sample is no older than the threshold (boundary inclusive)."""
    return sample_age(sample, now) <= timedelta(seconds=threshold_seconds)


def is_active(sample: Optional[TelemetrySample], now: datetime, threshold_seconds: float) -> bool:
    """Boolean-like field reading: value > 0 AND recent. Missing or stale → False."""
    if sample is None:
        return False
    return sample.value > 0 and is_recent(sample, now, threshold_seconds)


class TelemetryClient:
    def __init__(
        self,
        base_url: str,
        channel_id: Optional[str],
        api_key: Optional[str] = None,
        timeout: float = 5.0,
        results: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.channel_id = channel_id
        self.api_key = api_key
        self.timeout = timeout
        self.results = max(1, results)
        self._transport = transport

    @classmethod
    def from_settings(cls, transport: Optional[httpx.AsyncBaseTransport] = None) -> "TelemetryClient":
        return cls(
            base_url=settings.THINGSPEAK_BASE_URL,
            channel_id=settings.THINGSPEAK_CHANNEL_ID,
            api_key=settings.THINGSPEAK_READ_API_KEY,
            timeout=settings.TELEMETRY_TIMEOUT_SECONDS,
            results=settings.TELEMETRY_RESULTS,
            transport=transport,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.channel_id)

    def field_url(self, field_id: int) -> str:
        return f"{self.base_url}/channels/{self.channel_id}/fields/{field_id}.json"

    async def fetch_latest(self, field_id: int) -> TelemetrySample:
        """Newest sample carrying a value for this field."""
        samples = await self._fetch_samples(field_id, {"results": self.results})
        if not samples:
            raise TelemetryUnavailable(field_id, "no readings in feed")
        return samples[-1]

    async def fetch_recent(self, field_id: int, window_start: datetime) -> list[TelemetrySample]:
        """All samples captured at or after window_start, oldest first."""
        if window_start.tzinfo is None:
            window_start = window_start.replace(tzinfo=timezone.utc)
        start_utc = window_start.astimezone(timezone.utc)
        params = {
            "results": _MAX_RECENT_RESULTS,
            "start": start_utc.strftime(_START_FORMAT),
            "timezone": "Etc/UTC",
        }
        samples = await self._fetch_samples(field_id, params)
        return [s for s in samples if s.captured_at >= start_utc]

    async def _fetch_samples(self, field_id: int, params: dict) -> list[TelemetrySample]:
        if not self.enabled:
            raise TelemetryUnavailable(field_id, "telemetry channel not configured")

        if self.api_key:
            params = {**params, "api_key": self.api_key}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.field_url(field_id), params=params)
        except httpx.HTTPError as e:
            raise TelemetryUnavailable(field_id, f"request failed: {e.__class__.__name__}") from e

        if not 200 <= response.status_code < 300:
            raise TelemetryUnavailable(field_id, f"HTTP {response.status_code}")

        feeds = get_feeds(safe_parse_json(response.content))
        if feeds is None:
            raise TelemetryUnavailable(field_id, "malformed payload")

        return self._to_samples(field_id, feeds)

    @staticmethod
    def _to_samples(field_id: int, feeds: list) -> list[TelemetrySample]:
        """Entries without a parseable timestamp or value are skipped (ThingSpeak sends null for unset fields)."""
        key = f"field{field_id}"
        samples = []
        for entry in feeds:
            if not isinstance(entry, dict):
                continue
            captured_at = parse_timestamp(entry.get("created_at"))
            value = parse_number(entry.get(key))
            if captured_at is None or value is None:
                continue
            samples.append(TelemetrySample(field_id=field_id, value=value, captured_at=captured_at))
        samples.sort(key=lambda s: s.captured_at)
        return samples
