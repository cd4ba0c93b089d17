"""
Ride metrics shared by the ride endpoints, the analytics dashboard and the
seed script.

Path samples are mappings shaped like a BikeLocation document:
{"latitude", "longitude", "timestamp" (epoch ms), "accuracy", "speed", ...}.
Distances are returned in metres, speeds in km/h.
"""
import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .constants import DEFAULT_HOURLY_RATE, MINIMUM_BILLABLE_MINUTES
from .utils import now_ms, to_millis

MAX_REALISTIC_SPEED_KMH = 100
MIN_ACCURACY_THRESHOLD = 50  # metres
MAX_GPS_JUMP_DISTANCE_KM = 100

EARTH_RADIUS_KM = 6371.0

SPEED_FIELDS = ("speed", "speedKmh", "currentSpeed")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def distance_between_points(point1: Optional[Mapping], point2: Optional[Mapping]) -> float:
    """Haversine distance in kilometres; 0 for missing or malformed points."""
    if not point1 or not point2:
        return 0.0
    lat1, lng1 = point1.get("latitude"), point1.get("longitude")
    lat2, lng2 = point2.get("latitude"), point2.get("longitude")
    if not all(_is_number(value) for value in (lat1, lng1, lat2, lng2)):
        return 0.0

    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def is_valid_gps_coordinate(latitude, longitude) -> bool:
    # 0,0 is what an uninitialised location fix reports
    return (
        _is_number(latitude)
        and _is_number(longitude)
        and abs(latitude) <= 90
        and abs(longitude) <= 180
        and latitude != 0
        and longitude != 0
    )


def has_acceptable_accuracy(point: Mapping) -> bool:
    accuracy = point.get("accuracy")
    if not _is_number(accuracy) or accuracy <= 0:
        return True
    return accuracy <= MIN_ACCURACY_THRESHOLD


def is_realistic_distance(distance_km: float, time_interval_ms: float) -> bool:
    """Filter GPS jumps: the implied speed and the raw jump must both be plausible."""
    if time_interval_ms <= 0:
        return True
    time_hours = time_interval_ms / 3_600_000
    speed_kmh = distance_km / time_hours
    return speed_kmh < MAX_REALISTIC_SPEED_KMH and distance_km < MAX_GPS_JUMP_DISTANCE_KM


def is_realistic_speed(speed_kmh) -> bool:
    return _is_number(speed_kmh) and 0 <= speed_kmh < MAX_REALISTIC_SPEED_KMH


def _sample_time(point: Mapping) -> int:
    for key in ("timestamp", "deviceTimestamp"):
        value = to_millis(point.get(key))
        if value:
            return value
    return 0


def _is_usable_sample(point: Mapping) -> bool:
    return (
        is_valid_gps_coordinate(point.get("latitude"), point.get("longitude"))
        and has_acceptable_accuracy(point)
    )


def total_distance_from_path(path: Optional[Iterable[Mapping]]) -> float:
    """Total path length in metres, skipping invalid samples and GPS jumps."""
    points = [point for point in (path or []) if isinstance(point, Mapping)]
    if len(points) < 2:
        return 0.0

    total_km = 0.0
    for prev, curr in zip(points, points[1:]):
        if not (_is_usable_sample(prev) and _is_usable_sample(curr)):
            continue
        segment_km = distance_between_points(prev, curr)
        interval_ms = _sample_time(curr) - _sample_time(prev)
        if is_realistic_distance(segment_km, interval_ms):
            total_km += segment_km

    return total_km * 1000


def _sample_speed(point: Mapping) -> float:
    for key in SPEED_FIELDS:
        value = point.get(key)
        if value:
            return value
    return 0


def speeds_from_path(path: Optional[Iterable[Mapping]]) -> Tuple[float, float]:
    """Return (max_speed, average_speed) over the realistic, non-zero samples."""
    valid_speeds = []
    for point in path or []:
        if not isinstance(point, Mapping):
            continue
        speed = _sample_speed(point)
        if is_realistic_speed(speed) and speed > 0:
            valid_speeds.append(float(speed))

    if not valid_speeds:
        return 0.0, 0.0
    return max(valid_speeds), sum(valid_speeds) / len(valid_speeds)


def _clamp_speed(value) -> float:
    if not _is_number(value):
        return 0.0
    return max(0.0, min(float(value), MAX_REALISTIC_SPEED_KMH))


def process_ride_data(ride: Mapping, now: Optional[int] = None) -> Dict[str, Any]:
    """
    Fill in duration, speeds and distance for a ride document.

    Values already stored on the ride win; missing ones are derived from the
    GPS path. Returns a new dict, the input is left untouched.
    """
    start_time = to_millis(ride.get("startTime")) or 0
    end_time = to_millis(ride.get("endTime")) or 0
    if end_time:
        duration = end_time - start_time
    else:
        duration = (now if now is not None else now_ms()) - start_time

    max_speed = ride.get("maxSpeed") or 0
    average_speed = ride.get("averageSpeed") or 0
    total_distance = ride.get("totalDistance") or ride.get("distanceTraveled") or 0

    path = ride.get("path") or []
    if len(path) > 1:
        if not max_speed or not average_speed:
            path_max, path_average = speeds_from_path(path)
            if not max_speed:
                max_speed = path_max
            if not average_speed:
                average_speed = path_average
        if not total_distance:
            total_distance = total_distance_from_path(path)

    total_distance = max(0.0, float(total_distance)) if _is_number(total_distance) else 0.0

    processed = dict(ride)
    processed.update({
        "duration": duration,
        "maxSpeed": _clamp_speed(max_speed),
        "averageSpeed": _clamp_speed(average_speed),
        "totalDistance": total_distance,
        "distanceTraveled": total_distance,
    })
    return processed


def parse_hourly_rate(bike: Optional[Mapping]) -> float:
    """priceValue when set, else the digits of the display price ("₱12/hr")."""
    if not bike:
        return DEFAULT_HOURLY_RATE
    price_value = bike.get("priceValue")
    if _is_number(price_value) and price_value > 0:
        return float(price_value)
    digits = re.sub(r"[^0-9]", "", str(bike.get("price") or ""))
    if digits:
        return float(digits)
    return DEFAULT_HOURLY_RATE


def calculate_ride_cost(start_ms: int, end_ms: int, hourly_rate: float) -> float:
    duration_minutes = max(0, end_ms - start_ms) / 60_000
    billable_minutes = max(duration_minutes, MINIMUM_BILLABLE_MINUTES)
    return round(billable_minutes / 60 * hourly_rate, 2)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(distance_in_meters) -> str:
    if not _is_number(distance_in_meters) or distance_in_meters < 0:
        return "0 m"
    if distance_in_meters < 1000:
        return f"{_round_half_up(distance_in_meters)} m"
    if distance_in_meters < 10000:
        return f"{distance_in_meters / 1000:.2f} km"
    return f"{distance_in_meters / 1000:.1f} km"


def format_speed(speed_in_kmh) -> str:
    if not _is_number(speed_in_kmh) or speed_in_kmh < 0:
        return "0 km/h"
    if speed_in_kmh >= MAX_REALISTIC_SPEED_KMH:
        return "99+ km/h"
    if speed_in_kmh < 10:
        return f"{speed_in_kmh:.1f} km/h"
    return f"{_round_half_up(speed_in_kmh)} km/h"


def format_duration(duration_ms) -> str:
    if not _is_number(duration_ms) or duration_ms < 0:
        return "0:00"
    duration_ms = int(duration_ms)
    hours = duration_ms // 3_600_000
    minutes = (duration_ms % 3_600_000) // 60_000
    seconds = (duration_ms % 60_000) // 1000
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_datetime(timestamp) -> str:
    if not timestamp:
        return "N/A"
    if isinstance(timestamp, datetime):
        return timestamp.strftime("%Y-%m-%d %H:%M:%S")
    millis = to_millis(timestamp)
    if millis is None:
        return "Invalid date"
    try:
        return datetime.fromtimestamp(millis / 1000).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return "Invalid date"


def summarize_ride(ride: Mapping, now: Optional[int] = None) -> Dict[str, Any]:
    """Processed ride plus the display strings the clients show."""
    processed = process_ride_data(ride, now=now)
    processed["display"] = {
        "distance": format_distance(processed["totalDistance"]),
        "maxSpeed": format_speed(processed["maxSpeed"]),
        "averageSpeed": format_speed(processed["averageSpeed"]),
        "duration": format_duration(processed["duration"]),
        "startTime": format_datetime(processed.get("startTime")),
    }
    return processed
