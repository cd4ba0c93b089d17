import asyncio
import time
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone

from .constants import MAX_QUERY_LIMIT


def run_async(coro):
    """Helper to run async code in sync Django views."""
    try:
        loop = asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
    return loop.run_until_complete(coro)


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_datetime(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        if timezone.is_naive(value):
            return timezone.make_aware(value, timezone.get_current_timezone())
        return timezone.localtime(value)
    if hasattr(value, "timestamp"):
        return datetime.fromtimestamp(value.timestamp(), tz=timezone.get_current_timezone())
    return None


def to_millis(value):
    """Epoch milliseconds for ints, floats, datetimes and Firestore timestamps."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    normalized = normalize_datetime(value)
    if normalized is None:
        return None
    return int(normalized.timestamp() * 1000)


def parse_datetime_value(value):
    """Accept ISO-8601 strings or epoch milliseconds from request bodies."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return normalize_datetime(parsed)
    return normalize_datetime(value)


def parse_limit(value, default: int):
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    if limit <= 0:
        return default
    return min(limit, MAX_QUERY_LIMIT)


def parse_bool(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes"}:
            return True
        if lowered in {"0", "false", "no"}:
            return False
    return None


def format_timestamp(ts):
    if ts is None:
        return None
    if hasattr(ts, "isoformat"):
        return ts.isoformat()
    if hasattr(ts, "timestamp"):
        return datetime.fromtimestamp(ts.timestamp()).isoformat()
    return str(ts)


def serialize_document(value):
    """Make Firestore values JSON friendly (timestamps, GeoPoints, nesting)."""
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(item) for item in value]
    if isinstance(value, datetime):
        return format_timestamp(value)
    if hasattr(value, "latitude") and hasattr(value, "longitude") and not isinstance(value, dict):
        return {"latitude": value.latitude, "longitude": value.longitude}
    return value
