import logging
import math
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import (
    BOOKING_BLOCKING_STATUSES,
    BOOKING_COMPLETED,
    BOOKINGS_COLLECTION,
    DESCENDING,
    MAX_QUERY_LIMIT,
    PAYMENT_STATUS_PAID,
)
from ..firebase_service import FirestoreService
from ..models import Booking
from ..utils import normalize_datetime

logger = logging.getLogger("rentals")

BOOKING_FIELDS = {
    "startTime", "endTime", "totalPrice", "status", "paymentStatus",
    "isHourly", "notes", "location",
}

REVENUE_PERIODS = ("day", "week", "month")


def format_booking_duration(booking: Dict[str, Any]) -> str:
    """"2h 30m" for hourly bookings, "3 days" for daily ones."""
    start = normalize_datetime(booking.get("startTime"))
    end = normalize_datetime(booking.get("endTime"))
    if start is None or end is None:
        return "N/A"

    diff_hours = (end - start).total_seconds() / 3600
    if booking.get("isHourly", True):
        hours = math.floor(diff_hours)
        minutes = math.floor((diff_hours - hours) * 60)
        return f"{hours}h {minutes}m"

    days = math.ceil(diff_hours / 24)
    return f"{days} day{'s' if days != 1 else ''}"


def period_start(period: str, now: datetime) -> datetime:
    now = timezone.localtime(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return midnight
    if period == "week":
        # Weeks start on Sunday
        return midnight - timedelta(days=(midnight.weekday() + 1) % 7)
    if period == "month":
        return midnight.replace(day=1)
    raise ValueError('Invalid period. Use "day", "week", or "month"')


class BookingRepository(FirestoreService):
    """Advance bike reservations on bookings/{id}."""

    COLLECTION = BOOKINGS_COLLECTION

    def create_booking(self, booking: Booking) -> Optional[Dict[str, Any]]:
        if not self.db:
            logger.warning("Firestore not available")
            return None

        try:
            data = booking.to_dict()
            data["createdAt"] = timezone.now()
            _, doc_ref = self.collection.add(data)
            data["id"] = doc_ref.id
            logger.info(f"Booking {doc_ref.id} created: bike={booking.bikeId}, user={booking.userId}")
            return data
        except Exception as e:
            logger.error(f"Error creating booking: {e}")
            return None

    def get_booking(self, booking_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(booking_id)

    def update_booking(self, booking_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        updates = {key: value for key, value in data.items() if key in BOOKING_FIELDS}
        updates["updatedAt"] = timezone.now()
        if not self.update_document(booking_id, updates):
            return None
        return self.get_booking(booking_id)

    def delete_booking(self, booking_id: str) -> bool:
        return self.delete_document(booking_id)

    def get_bookings_by_user(self, user_id: str) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.where("userId", "==", user_id).order_by("startTime", direction=DESCENDING),
            limit=MAX_QUERY_LIMIT,
        )

    def get_bookings_by_bike(self, bike_id: str) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.where("bikeId", "==", bike_id).order_by("startTime", direction=DESCENDING),
            limit=MAX_QUERY_LIMIT,
        )

    def get_bookings_by_date_range(self, start: datetime, end: datetime) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: (
                query.where("startTime", ">=", start)
                .where("startTime", "<=", end)
                .order_by("startTime", direction=DESCENDING)
            ),
            limit=None,
        )

    def check_bike_availability(self, bike_id: str, start: datetime, end: datetime) -> Optional[Dict[str, Any]]:
        """
        A bike is unavailable when a pending or confirmed booking overlaps
        [start, end]: it starts before our end and ends after our start.
        """
        candidates = self.query_documents(
            lambda query: (
                query.where("bikeId", "==", bike_id)
                .where("status", "in", BOOKING_BLOCKING_STATUSES)
                .where("startTime", "<=", end)
            ),
            limit=None,
        )
        if candidates is None:
            return None

        conflicts = []
        for booking in candidates:
            booking_end = normalize_datetime(booking.get("endTime"))
            if booking_end is not None and booking_end >= start:
                conflicts.append(booking)
        return {"available": not conflicts, "conflictingBookings": conflicts}

    def get_revenue_by_period(self, period: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        now = now or timezone.now()
        start = period_start(period, now)
        bookings = self.get_bookings_by_date_range(start, now)
        if bookings is None:
            return None

        total_revenue = 0.0
        for booking in bookings:
            if booking.get("status") == BOOKING_COMPLETED and booking.get("paymentStatus") == PAYMENT_STATUS_PAID:
                try:
                    total_revenue += float(booking.get("totalPrice") or 0)
                except (TypeError, ValueError):
                    continue

        return {
            "period": period,
            "totalRevenue": round(total_revenue, 2),
            "bookings": len(bookings),
            "startDate": start,
            "endDate": now,
        }


# Singleton instance
booking_repository = BookingRepository()
