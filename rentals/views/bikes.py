import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required
from ..constants import MAX_QUERY_LIMIT
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, truncate, write_failed
from ..repositories import bike_repository
from ..ride_metrics import is_valid_gps_coordinate
from ..utils import parse_bool

logger = logging.getLogger("rentals")


@csrf_exempt
def bikes(request):
    if request.method == "GET":
        return _list_bikes(request)
    if request.method == "POST":
        return _create_bike(request)
    return HttpResponseNotAllowed(["GET", "POST"])


def _list_bikes(request):
    if not bike_repository.is_available():
        return firestore_unavailable()

    available_only = parse_bool(request.GET.get("available")) is True
    bike_type = request.GET.get("type") or None

    items = bike_repository.list_bikes(
        available_only=available_only, bike_type=bike_type, limit=MAX_QUERY_LIMIT + 1
    )
    if items is None:
        return write_failed("list_bikes")
    items, truncated = truncate(items, MAX_QUERY_LIMIT)
    return json_response({"bikes": items, "count": len(items), "truncated": truncated})


@admin_required
def _create_bike(request):
    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "name", "type", "priceValue")
    if error:
        return error

    if not bike_repository.is_available():
        return firestore_unavailable()

    bike = bike_repository.create_bike(data)
    if not bike:
        return write_failed("create_bike")

    logger.info(f"[BIKES] {request.firebase_user['uid']} created bike {bike['id']}")
    return json_response({"bike": bike}, status=201)


@csrf_exempt
def bike_types(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not bike_repository.is_available():
        return firestore_unavailable()

    types = bike_repository.list_bike_types()
    if types is None:
        return write_failed("list_bike_types")
    return JsonResponse({"types": types})


@csrf_exempt
def bike_detail(request, bike_id: str):
    if request.method == "GET":
        return _get_bike(request, bike_id)
    if request.method == "PATCH":
        return _update_bike(request, bike_id)
    if request.method == "DELETE":
        return _delete_bike(request, bike_id)
    return HttpResponseNotAllowed(["GET", "PATCH", "DELETE"])


def _get_bike(request, bike_id: str):
    if not bike_repository.is_available():
        return firestore_unavailable()

    bike = bike_repository.get_bike(bike_id)
    if not bike:
        return not_found("bike")
    return json_response({"bike": bike})


@admin_required
def _update_bike(request, bike_id: str):
    data, error = json_body(request)
    if error:
        return error

    if not bike_repository.is_available():
        return firestore_unavailable()

    if not bike_repository.get_bike(bike_id, fresh=True):
        return not_found("bike")

    bike = bike_repository.update_bike(bike_id, data)
    if not bike:
        return write_failed("update_bike")
    return json_response({"bike": bike})


@admin_required
def _delete_bike(request, bike_id: str):
    if not bike_repository.is_available():
        return firestore_unavailable()

    bike = bike_repository.get_bike(bike_id, fresh=True)
    if not bike:
        return not_found("bike")
    if bike.get("isInUse"):
        return JsonResponse({"error": "bike_in_use"}, status=409)

    if not bike_repository.delete_bike(bike_id):
        return write_failed("delete_bike")

    logger.info(f"[BIKES] {request.firebase_user['uid']} deleted bike {bike_id}")
    return JsonResponse({"deleted": True, "id": bike_id})


@csrf_exempt
@admin_required
def bike_location(request, bike_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "latitude", "longitude")
    if error:
        return error

    latitude, longitude = data["latitude"], data["longitude"]
    if not is_valid_gps_coordinate(latitude, longitude):
        return JsonResponse({"error": "invalid_coordinates"}, status=400)

    if not bike_repository.is_available():
        return firestore_unavailable()

    if not bike_repository.get_bike(bike_id, fresh=True):
        return not_found("bike")

    if not bike_repository.update_bike_location(bike_id, float(latitude), float(longitude)):
        return write_failed("update_bike_location")
    return JsonResponse({"id": bike_id, "latitude": latitude, "longitude": longitude})


@csrf_exempt
@admin_required
def bike_availability(request, bike_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    is_available = parse_bool(data.get("isAvailable"))
    if is_available is None:
        return JsonResponse({"error": "isAvailable must be a boolean"}, status=400)

    if not bike_repository.is_available():
        return firestore_unavailable()

    bike = bike_repository.get_bike(bike_id, fresh=True)
    if not bike:
        return not_found("bike")
    if is_available and bike.get("isInUse"):
        return JsonResponse({"error": "bike_in_use"}, status=409)

    if not bike_repository.update_bike_availability(bike_id, is_available):
        return write_failed("update_bike_availability")
    return JsonResponse({"id": bike_id, "isAvailable": is_available})
