import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import (
    DESCENDING,
    MAX_QUERY_LIMIT,
    PAYMENT_SETTINGS_DOCUMENT,
    PAYMENTS_COLLECTION,
    SETTINGS_COLLECTION,
)
from ..firebase_service import FirestoreService
from ..models import Payment, PaymentSettings

logger = logging.getLogger("rentals")


class PaymentSettingsRepository(FirestoreService):
    """GCash details shown on the payment screen, stored at settings/payment."""

    COLLECTION = SETTINGS_COLLECTION

    def get_payment_settings(self) -> PaymentSettings:
        """Never fails: falls back to the defaults when missing or unreadable."""
        return PaymentSettings.from_dict(self.get_document(PAYMENT_SETTINGS_DOCUMENT))

    def update_payment_settings(self, data: Dict[str, Any]) -> Optional[PaymentSettings]:
        if not self.db:
            return None

        current = self.get_payment_settings().to_dict()
        current.update({key: value for key, value in data.items() if key in current})
        settings = PaymentSettings.from_dict(current)

        try:
            self.collection.document(PAYMENT_SETTINGS_DOCUMENT).set(
                {**settings.to_dict(), "updatedAt": timezone.now()}, merge=True
            )
            return settings
        except Exception as e:
            logger.error(f"Error updating payment settings: {e}")
            return None


class PaymentRepository(FirestoreService):
    """Manual GCash payments awaiting admin review, on payments/{id}."""

    COLLECTION = PAYMENTS_COLLECTION

    def create_payment(self, payment: Payment) -> Optional[Dict[str, Any]]:
        if not self.db:
            logger.warning("Firestore not available")
            return None

        try:
            data = payment.to_document(timezone.now())
            _, doc_ref = self.collection.add(data)
            data["id"] = doc_ref.id
            logger.info(f"Payment {doc_ref.id} submitted by {payment.userId} (ref={payment.referenceNumber})")
            return data
        except Exception as e:
            logger.error(f"Error creating payment: {e}")
            return None

    def get_payment(self, payment_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(payment_id)

    def list_payments(self, user_id: Optional[str] = None, status: Optional[str] = None) -> Optional[List[Dict[str, Any]]]:
        def build(query):
            if user_id:
                query = query.where("userId", "==", user_id)
            if status:
                query = query.where("status", "==", status)
            return query.order_by("createdAt", direction=DESCENDING)

        return self.query_documents(build, limit=MAX_QUERY_LIMIT)

    def update_payment_status(self, payment_id: str, status: str, processed_by: str, notes: str = "") -> bool:
        updates = {
            "status": status,
            "processedAt": timezone.now(),
            "processedBy": processed_by,
        }
        if notes:
            updates["notes"] = notes
        return self.update_document(payment_id, updates)


# Singleton instances
payment_settings_repository = PaymentSettingsRepository()
payment_repository = PaymentRepository()
