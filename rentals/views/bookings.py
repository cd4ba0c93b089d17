import logging
import math

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, can_access, firebase_login_required, is_admin_request
from ..constants import (
    BOOKING_CANCELLED,
    BOOKING_COMPLETED,
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    BOOKING_STATUSES,
    PAYMENT_STATUS_UNPAID,
)
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, write_failed
from ..models import Booking
from ..repositories import bike_repository, booking_repository, notification_repository
from ..repositories.bookings import REVENUE_PERIODS, format_booking_duration
from ..ride_metrics import parse_hourly_rate
from ..utils import parse_datetime_value

logger = logging.getLogger("rentals")

# Fields only admins may change on a booking
ADMIN_BOOKING_FIELDS = {"paymentStatus", "totalPrice"}


def _with_duration(booking):
    return {**booking, "duration": format_booking_duration(booking)}


def _parse_window(start_value, end_value):
    """(start, end, None) or (None, None, error response)."""
    start = parse_datetime_value(start_value)
    end = parse_datetime_value(end_value)
    if start is None or end is None:
        return None, None, JsonResponse({"error": "invalid_datetime"}, status=400)
    if end <= start:
        return None, None, JsonResponse({"error": "endTime must be after startTime"}, status=400)
    return start, end, None


def _booking_price(bike, start, end, is_hourly: bool) -> float:
    hours = (end - start).total_seconds() / 3600
    rate = parse_hourly_rate(bike)
    if is_hourly:
        return round(hours * rate, 2)
    days = math.ceil(hours / 24)
    return round(days * 24 * rate, 2)


@csrf_exempt
@firebase_login_required
def bookings(request):
    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    if request.method == "GET":
        return _list_bookings(request)
    return _create_booking(request)


def _list_bookings(request):
    if not booking_repository.is_available():
        return firestore_unavailable()

    bike_id = request.GET.get("bikeId")
    if bike_id and is_admin_request(request):
        items = booking_repository.get_bookings_by_bike(bike_id)
    else:
        items = booking_repository.get_bookings_by_user(request.firebase_user["uid"])
    if items is None:
        return write_failed("load_bookings")
    return json_response({"bookings": [_with_duration(item) for item in items], "count": len(items)})


def _create_booking(request):
    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "bikeId", "startTime", "endTime")
    if error:
        return error

    start, end, error = _parse_window(data["startTime"], data["endTime"])
    if error:
        return error

    if not booking_repository.is_available():
        return firestore_unavailable()

    bike = bike_repository.get_bike(data["bikeId"])
    if not bike:
        return not_found("bike")

    availability = booking_repository.check_bike_availability(bike["id"], start, end)
    if availability is None:
        return write_failed("check_availability")
    if not availability["available"]:
        return json_response({
            "error": "bike_already_booked",
            "conflictingBookings": availability["conflictingBookings"],
        }, status=409)

    booking = Booking.from_dict({**data, "userId": request.firebase_user["uid"]}, start, end)
    booking.bikeName = booking.bikeName or bike.get("name", "")
    booking.bikeType = booking.bikeType or bike.get("type", "")
    booking.bikeImageUrl = booking.bikeImageUrl or bike.get("imageUrl", "")
    if not booking.totalPrice:
        booking.totalPrice = _booking_price(bike, start, end, booking.isHourly)
    if not is_admin_request(request):
        # Clients cannot book themselves as confirmed or paid
        booking.status = BOOKING_PENDING
        booking.paymentStatus = PAYMENT_STATUS_UNPAID

    created = booking_repository.create_booking(booking)
    if not created:
        return write_failed("create_booking")

    logger.info(f"[BOOKINGS] Created {created['id']} for bike {bike['id']}")
    return json_response({"booking": _with_duration(created)}, status=201)


@csrf_exempt
def booking_availability(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    bike_id = request.GET.get("bikeId")
    if not bike_id:
        return JsonResponse({"error": "missing_fields", "required": ["bikeId", "start", "end"], "missing": ["bikeId"]}, status=400)

    start, end, error = _parse_window(request.GET.get("start"), request.GET.get("end"))
    if error:
        return error

    if not booking_repository.is_available():
        return firestore_unavailable()

    availability = booking_repository.check_bike_availability(bike_id, start, end)
    if availability is None:
        return write_failed("check_availability")
    return json_response({"bikeId": bike_id, **availability})


@csrf_exempt
@firebase_login_required
def booking_detail(request, booking_id: str):
    if request.method not in ("PATCH", "DELETE"):
        return HttpResponseNotAllowed(["PATCH", "DELETE"])

    if not booking_repository.is_available():
        return firestore_unavailable()

    booking = booking_repository.get_booking(booking_id)
    if not booking:
        return not_found("booking")
    if not can_access(request, booking.get("userId")):
        return JsonResponse({"error": "forbidden"}, status=403)

    if request.method == "DELETE":
        if not booking_repository.delete_booking(booking_id):
            return write_failed("delete_booking")
        return JsonResponse({"deleted": True, "id": booking_id})

    data, error = json_body(request)
    if error:
        return error
    return _update_booking(request, booking, data)


def _update_booking(request, booking, data):
    is_admin = is_admin_request(request)
    actor = request.firebase_user["uid"]

    status = data.get("status")
    if status is not None:
        if status not in BOOKING_STATUSES:
            return JsonResponse({"error": "invalid_status", "allowed": list(BOOKING_STATUSES)}, status=400)
        if not is_admin and status != BOOKING_CANCELLED:
            return JsonResponse({"error": "admin_required"}, status=403)
        if booking.get("status") in (BOOKING_CANCELLED, BOOKING_COMPLETED) and status != booking.get("status"):
            return JsonResponse({"error": "booking_closed", "status": booking.get("status")}, status=409)

    if not is_admin and ADMIN_BOOKING_FIELDS & data.keys():
        return JsonResponse({"error": "admin_required"}, status=403)

    updates = dict(data)
    if "startTime" in data or "endTime" in data:
        start, end, error = _parse_window(
            data.get("startTime", booking.get("startTime")),
            data.get("endTime", booking.get("endTime")),
        )
        if error:
            return error
        availability = booking_repository.check_bike_availability(booking.get("bikeId"), start, end)
        if availability is None:
            return write_failed("check_availability")
        conflicts = [item for item in availability["conflictingBookings"] if item.get("id") != booking["id"]]
        if conflicts:
            return json_response({"error": "bike_already_booked", "conflictingBookings": conflicts}, status=409)
        updates["startTime"], updates["endTime"] = start, end

    updated = booking_repository.update_booking(booking["id"], updates)
    if not updated:
        return write_failed("update_booking")

    if status and status != booking.get("status"):
        if status == BOOKING_CONFIRMED:
            notification_repository.notify_booking_confirmed(updated, created_by=actor)
        elif status == BOOKING_CANCELLED:
            notification_repository.notify_booking_cancelled(updated, data.get("reason") or "", created_by=actor)
        elif status == BOOKING_COMPLETED:
            notification_repository.notify_booking_completed(updated, created_by=actor)
        logger.info(f"[BOOKINGS] {booking['id']} {booking.get('status')} -> {status} by {actor}")

    return json_response({"booking": _with_duration(updated)})


@csrf_exempt
@admin_required
def booking_revenue(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    period = request.GET.get("period", "day")
    if period not in REVENUE_PERIODS:
        return JsonResponse({"error": "invalid_period", "allowed": list(REVENUE_PERIODS)}, status=400)

    if not booking_repository.is_available():
        return firestore_unavailable()

    revenue = booking_repository.get_revenue_by_period(period)
    if revenue is None:
        return write_failed("load_revenue")
    return json_response(revenue)
