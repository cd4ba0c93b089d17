import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, can_access, firebase_login_required
from ..constants import DEFAULT_RIDE_HISTORY_LIMIT, DIRECTIONS_MODES, MAX_QUERY_LIMIT
from ..directions_client import get_route
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, truncate, write_failed
from ..models import BikeLocation
from ..repositories import bike_repository, ride_repository
from ..ride_metrics import is_valid_gps_coordinate, summarize_ride
from ..utils import now_ms, parse_bool, parse_limit

logger = logging.getLogger("rentals")


def _location_from(data):
    """GPS sample from a request body, or None when the coordinates are unusable."""
    if not isinstance(data, dict):
        return None
    if not is_valid_gps_coordinate(data.get("latitude"), data.get("longitude")):
        return None
    return BikeLocation.from_dict(data, default_timestamp=now_ms()).to_dict()


def _owned_ride(request, ride_id: str):
    """(ride, None) when the caller may act on the ride, else (None, error response)."""
    ride = ride_repository.get_ride(ride_id)
    if not ride:
        return None, not_found("ride")
    if not can_access(request, ride.get("userId")):
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return ride, None


def _optional_float(data, field):
    value = data.get(field)
    if value is None:
        return None, None
    try:
        return float(value), None
    except (TypeError, ValueError):
        return None, JsonResponse({"error": f"{field} must be a number"}, status=400)


@csrf_exempt
@firebase_login_required
def ride_start(request):
    """
    Start a ride on an available bike.

    Body: {"bikeId": "...", "location": {"latitude": .., "longitude": .., ...}}
    """
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "bikeId", "location")
    if error:
        return error

    start_location = _location_from(data["location"])
    if start_location is None:
        return JsonResponse({"error": "invalid_location"}, status=400)

    if not ride_repository.is_available():
        return firestore_unavailable()

    user_id = request.firebase_user["uid"]
    bike = bike_repository.get_bike(data["bikeId"], fresh=True)
    if not bike:
        return not_found("bike")
    if not bike.get("isAvailable", True) or bike.get("isInUse"):
        return JsonResponse({"error": "bike_unavailable"}, status=409)

    if ride_repository.get_active_ride(user_id):
        return JsonResponse({"error": "active_ride_exists"}, status=409)

    ride = ride_repository.create_ride(user_id, bike, start_location)
    if not ride:
        return write_failed("start_ride")

    logger.info(f"[RIDES/START] user={user_id}, bike={bike['id']}, ride={ride['id']}")
    return json_response({"ride": ride}, status=201)


@csrf_exempt
@firebase_login_required
def ride_location(request, ride_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    location = _location_from(data.get("location", data))
    if location is None:
        return JsonResponse({"error": "invalid_location"}, status=400)

    if not ride_repository.is_available():
        return firestore_unavailable()

    ride, error = _owned_ride(request, ride_id)
    if error:
        return error
    if not ride.get("isActive"):
        return JsonResponse({"error": "ride_not_active"}, status=409)

    updated = ride_repository.record_location(ride, location)
    if not updated:
        return write_failed("record_location")

    return JsonResponse({
        "id": ride_id,
        "distanceTraveled": updated["distanceTraveled"],
        "averageSpeed": updated["averageSpeed"],
        "maxSpeed": updated["maxSpeed"],
        "pathPointCount": len(updated["path"]),
    })


@csrf_exempt
@firebase_login_required
def ride_end(request, ride_id: str):
    """
    End an active ride.

    Body (all optional): {"location": {...}, "finalDistance": metres, "finalCost": amount}
    Without a location the last recorded sample is used.
    """
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    final_distance, error = _optional_float(data, "finalDistance")
    if error:
        return error
    final_cost, error = _optional_float(data, "finalCost")
    if error:
        return error

    if not ride_repository.is_available():
        return firestore_unavailable()

    ride, error = _owned_ride(request, ride_id)
    if error:
        return error
    if not ride.get("isActive"):
        return JsonResponse({"error": "ride_not_active"}, status=409)

    if data.get("location") is not None:
        end_location = _location_from(data["location"])
        if end_location is None:
            return JsonResponse({"error": "invalid_location"}, status=400)
    else:
        end_location = {**(ride.get("lastLocation") or ride.get("startLocation") or {}), "timestamp": now_ms()}

    bike = bike_repository.get_bike(ride["bikeId"], fresh=True)
    if bike is None:
        logger.warning(f"[RIDES/END] Bike {ride['bikeId']} of ride {ride_id} not found")

    ended = ride_repository.end_ride(ride, bike, end_location, final_distance, final_cost)
    if not ended:
        return write_failed("end_ride")

    logger.info(f"[RIDES/END] ride={ride_id}, cost={ended['cost']}")
    return json_response({"ride": summarize_ride(ended)})


@csrf_exempt
@firebase_login_required
def ride_cancel(request, ride_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    ride, error = _owned_ride(request, ride_id)
    if error:
        return error
    if not ride.get("isActive"):
        return JsonResponse({"error": "ride_not_active"}, status=409)

    bike = bike_repository.get_bike(ride["bikeId"], fresh=True)
    if not ride_repository.cancel_ride(ride, bike):
        return write_failed("cancel_ride")

    logger.info(f"[RIDES/CANCEL] ride={ride_id}")
    return JsonResponse({"id": ride_id, "status": "cancelled"})


@csrf_exempt
@firebase_login_required
def ride_detail(request, ride_id: str):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    ride, error = _owned_ride(request, ride_id)
    if error:
        return error
    return json_response({"ride": summarize_ride(ride)})


@csrf_exempt
@firebase_login_required
def ride_active(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    ride = ride_repository.get_active_ride(request.firebase_user["uid"])
    return json_response({"ride": summarize_ride(ride) if ride else None})


@csrf_exempt
@firebase_login_required
def ride_history(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    limit = parse_limit(request.GET.get("limit"), DEFAULT_RIDE_HISTORY_LIMIT)
    rides = ride_repository.get_user_ride_history(request.firebase_user["uid"], limit)
    if rides is None:
        return write_failed("load_ride_history")

    return json_response({"rides": [summarize_ride(ride) for ride in rides], "count": len(rides)})


@csrf_exempt
@firebase_login_required
def ride_stats(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    stats = ride_repository.get_user_ride_stats(request.firebase_user["uid"])
    if stats is None:
        return write_failed("load_ride_stats")
    return JsonResponse(stats)


@csrf_exempt
@admin_required
def admin_rides(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not ride_repository.is_available():
        return firestore_unavailable()

    active_only = parse_bool(request.GET.get("active")) is True
    limit = parse_limit(request.GET.get("limit"), MAX_QUERY_LIMIT)
    rides = ride_repository.list_rides(active_only=active_only, limit=limit + 1)
    if rides is None:
        return write_failed("list_rides")

    rides, truncated = truncate(rides, limit)
    return json_response({
        "rides": [summarize_ride(ride) for ride in rides],
        "count": len(rides),
        "truncated": truncated,
    })


@csrf_exempt
@firebase_login_required
def ride_route(request):
    """
    Route between two points for the map screen.

    Body: {"origin": {latitude, longitude}, "destination": {...}, "mode": "bicycling"}
    """
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "origin", "destination")
    if error:
        return error

    origin, destination = data["origin"], data["destination"]
    for point in (origin, destination):
        if not isinstance(point, dict) or not is_valid_gps_coordinate(point.get("latitude"), point.get("longitude")):
            return JsonResponse({"error": "invalid_location"}, status=400)

    mode = data.get("mode", "bicycling")
    if mode not in DIRECTIONS_MODES:
        return JsonResponse({"error": "invalid_mode", "allowed": sorted(DIRECTIONS_MODES)}, status=400)

    return get_route(origin, destination, mode)
