import logging
from typing import Any, Dict, Mapping

import requests
from django.conf import settings
from django.http import JsonResponse

from .constants import DIRECTIONS_API_URL, DIRECTIONS_TIMEOUT_SECONDS
from .ride_metrics import distance_between_points, format_distance, format_duration

logger = logging.getLogger("rentals")

# Average cycling speed used when no Directions key is configured
ESTIMATE_SPEED_KMH = 15.0


def _latlng(point: Mapping) -> str:
    return f"{point['latitude']},{point['longitude']}"


def estimate_route(origin: Mapping, destination: Mapping) -> Dict[str, Any]:
    """Straight-line distance and duration at an average cycling pace."""
    distance_km = distance_between_points(origin, destination)
    duration_ms = int(distance_km / ESTIMATE_SPEED_KMH * 3600 * 1000)
    return {
        "source": "estimate",
        "routes": [{
            "distanceMeters": round(distance_km * 1000),
            "durationSeconds": duration_ms // 1000,
            "distanceText": format_distance(distance_km * 1000),
            "durationText": format_duration(duration_ms),
            "polyline": None,
        }],
    }


def _parse_routes(body: Dict[str, Any]):
    routes = []
    for route in body.get("routes", []):
        legs = route.get("legs") or []
        routes.append({
            "distanceMeters": sum(leg.get("distance", {}).get("value", 0) for leg in legs),
            "durationSeconds": sum(leg.get("duration", {}).get("value", 0) for leg in legs),
            "distanceText": legs[0].get("distance", {}).get("text") if legs else None,
            "durationText": legs[0].get("duration", {}).get("text") if legs else None,
            "polyline": (route.get("overview_polyline") or {}).get("points"),
            "summary": route.get("summary", ""),
        })
    return routes


def get_route(origin: Mapping, destination: Mapping, mode: str = "bicycling") -> JsonResponse:
    """Call the Google Directions API and answer with the parsed routes."""
    api_key = getattr(settings, "GOOGLE_MAPS_API_KEY", "")
    if not api_key:
        return JsonResponse(estimate_route(origin, destination))

    params = {
        "origin": _latlng(origin),
        "destination": _latlng(destination),
        "mode": mode,
        "key": api_key,
    }
    try:
        response = requests.get(DIRECTIONS_API_URL, params=params, timeout=DIRECTIONS_TIMEOUT_SECONDS)
        try:
            body = response.json()
        except ValueError:
            body = {"raw": response.text}
        if response.status_code != 200:
            return JsonResponse(body, status=response.status_code)

        status = body.get("status")
        if status == "ZERO_RESULTS":
            return JsonResponse({"source": "google", "routes": []})
        if status != "OK":
            logger.error(f"[DIRECTIONS] API status {status}: {body.get('error_message', '')}")
            return JsonResponse({"error": "directions_failed", "status": status}, status=502)

        return JsonResponse({"source": "google", "routes": _parse_routes(body)})
    except requests.exceptions.ConnectionError:
        return JsonResponse({"error": "directions_service_unavailable"}, status=503)
    except requests.exceptions.Timeout:
        return JsonResponse({"error": "directions_service_timeout"}, status=504)
