import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import DESCENDING, NOTIFICATION_LIMIT, NOTIFICATIONS_COLLECTION
from ..firebase_service import FirestoreService
from ..models import NotificationRequest

logger = logging.getLogger("rentals")


class NotificationRepository(FirestoreService):
    """In-app notifications on notifications/{id}, keyed to a user by userId."""

    COLLECTION = NOTIFICATIONS_COLLECTION

    def get_notifications(self, user_id: str, limit: int = NOTIFICATION_LIMIT) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.where("userId", "==", user_id).order_by("timestamp", direction=DESCENDING),
            limit=limit,
        )

    def list_all(self, notification_type: Optional[str] = None, limit: int = NOTIFICATION_LIMIT) -> Optional[List[Dict[str, Any]]]:
        def build(query):
            if notification_type:
                query = query.where("type", "==", notification_type)
            return query.order_by("timestamp", direction=DESCENDING)

        return self.query_documents(build, limit=limit)

    def get_unread_count(self, user_id: str) -> Optional[int]:
        unread = self.query_documents(
            lambda query: query.where("userId", "==", user_id).where("read", "==", False),
            limit=None,
        )
        if unread is None:
            return None
        return len(unread)

    def get_notification(self, notification_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(notification_id)

    def mark_as_read(self, notification_id: str) -> bool:
        return self.update_document(notification_id, {"read": True})

    def mark_all_as_read(self, user_id: str) -> Optional[int]:
        """Batch-mark every unread notification of a user. Returns the count."""
        if not self.db:
            return None

        try:
            query = (
                self.collection
                .where("userId", "==", user_id)
                .where("read", "==", False)
            )
            docs = list(query.stream())
            self.write_in_batches(docs, lambda batch, doc: batch.update(doc.reference, {"read": True}))
            logger.info(f"Marked {len(docs)} notifications as read for {user_id}")
            return len(docs)
        except Exception as e:
            logger.error(f"Error marking all notifications as read: {e}")
            return None

    def delete_notification(self, notification_id: str) -> bool:
        return self.delete_document(notification_id)

    def clear_all(self, user_id: str) -> Optional[int]:
        """Batch-delete every notification of a user. Returns the count."""
        if not self.db:
            return None

        try:
            docs = list(self.collection.where("userId", "==", user_id).stream())
            self.write_in_batches(docs, lambda batch, doc: batch.delete(doc.reference))
            logger.info(f"Cleared {len(docs)} notifications for {user_id}")
            return len(docs)
        except Exception as e:
            logger.error(f"Error clearing notifications: {e}")
            return None

    def create_notification(self, request: NotificationRequest, created_by: str = "system") -> Optional[Dict[str, Any]]:
        if not self.db:
            logger.warning("Firestore not available")
            return None

        try:
            data = request.to_document(timezone.now())
            data["createdBy"] = created_by
            _, doc_ref = self.collection.add(data)
            data["id"] = doc_ref.id
            logger.info(f"Created notification {doc_ref.id} ({request.type}) for {request.userId}")
            return data
        except Exception as e:
            logger.error(f"Error creating notification: {e}")
            return None

    # =========================================================================
    # Booking notifications
    # =========================================================================

    @staticmethod
    def _bike_label(booking: Dict[str, Any]) -> str:
        return booking.get("bikeName") or booking.get("bikeModel") or "bike"

    def notify_booking_confirmed(self, booking: Dict[str, Any], created_by: str = "admin"):
        return self.create_notification(NotificationRequest(
            userId=booking["userId"],
            type="BOOKING_CONFIRMATION",
            title="Booking Confirmed",
            message=f"Your booking for {self._bike_label(booking)} has been confirmed.",
            actionText="View Details",
            actionData={"bookingId": booking["id"]},
        ), created_by=created_by)

    def notify_booking_cancelled(self, booking: Dict[str, Any], reason: str = "", created_by: str = "admin"):
        suffix = f". Reason: {reason}" if reason else "."
        return self.create_notification(NotificationRequest(
            userId=booking["userId"],
            type="BOOKING_CANCELLATION",
            title="Booking Cancelled",
            message=f"Booking for {self._bike_label(booking)} has been cancelled{suffix}",
            actionData={"bookingId": booking["id"], "reason": reason, "cancelledBy": created_by},
            priority="HIGH",
        ), created_by=created_by)

    def notify_booking_completed(self, booking: Dict[str, Any], created_by: str = "admin"):
        return self.create_notification(NotificationRequest(
            userId=booking["userId"],
            type="RIDE_COMPLETE",
            title="Booking Completed",
            message=f"Your booking for {self._bike_label(booking)} is complete. Thanks for riding with us!",
            actionText="Rate Ride",
            actionData={"bookingId": booking["id"]},
        ), created_by=created_by)


# Singleton instance
notification_repository = NotificationRepository()
