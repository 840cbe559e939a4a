# app/utils/json_parser.py
"""
Helpers for parsing ThingSpeak JSON feed payloads.
ThingSpeak sends every field value as a string (or null) and timestamps as ISO-8601 UTC.
"""

import json
import math
from datetime import datetime, timezone
from typing import Optional, Any


def safe_parse_json(raw_body: bytes) -> Optional[Any]:
    """Parse JSON bytes safely. Returns None on error."""
    try:
        return json.loads(raw_body.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def get_feeds(payload: Any) -> Optional[list]:
    """Return the `feeds` list of a channel/field response, or None if the shape is wrong."""
    if not isinstance(payload, dict):
        return None
    feeds = payload.get("feeds")
    if not isinstance(feeds, list):
        return None
    return feeds


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a ThingSpeak `created_at` value into an aware UTC datetime.
    Naive timestamps are assumed to be UTC. Returns None if unparseable.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_number(value: Any) -> Optional[float]:
    """Parse a field value ("1", "450.5", 3) into a float. None, blanks, NaN → None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number
