import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import (
    ASCENDING,
    DESCENDING,
    FAQS_COLLECTION,
    MAX_QUERY_LIMIT,
    SUPPORT_MESSAGES_COLLECTION,
    SUPPORT_REPLIES_SUBCOLLECTION,
    SUPPORT_STATUS_IN_PROGRESS,
    SUPPORT_STATUS_NEW,
    SUPPORT_STATUS_RESOLVED,
)
from ..firebase_service import FirestoreService
from ..models import SupportMessage, SupportReply

logger = logging.getLogger("rentals")

FAQ_FIELDS = {"question", "answer", "order"}


class SupportRepository(FirestoreService):
    """Support conversations on supportMessages/{id} with a replies sub-collection."""

    COLLECTION = SUPPORT_MESSAGES_COLLECTION

    def submit_message(self, message: SupportMessage) -> Optional[Dict[str, Any]]:
        if not self.db:
            logger.warning("Firestore not available")
            return None

        try:
            data = message.to_document(timezone.now())
            _, doc_ref = self.collection.add(data)
            data["id"] = doc_ref.id
            logger.info(f"Support message {doc_ref.id} submitted by {message.userId}")
            return data
        except Exception as e:
            logger.error(f"Error submitting support message: {e}")
            return None

    def get_message(self, message_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(message_id)

    def get_user_messages(self, user_id: str) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.where("userId", "==", user_id).order_by("dateCreated", direction=DESCENDING),
            limit=MAX_QUERY_LIMIT,
        )

    def get_all_messages(self) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.order_by("dateCreated", direction=DESCENDING),
            limit=MAX_QUERY_LIMIT,
        )

    def update_status(self, message_id: str, status: str) -> bool:
        return self.update_document(message_id, {
            "status": status,
            "lastUpdated": timezone.now(),
        })

    def send_response(self, message_id: str, response_text: str) -> bool:
        return self.update_document(message_id, {
            "response": response_text,
            "status": SUPPORT_STATUS_RESOLVED,
            "respondedAt": timezone.now(),
        })

    def delete_message(self, message_id: str) -> bool:
        return self.delete_document(message_id)

    def _replies(self, message_id: str):
        return self.collection.document(message_id).collection(SUPPORT_REPLIES_SUBCOLLECTION)

    def get_replies(self, message_id: str) -> Optional[List[Dict[str, Any]]]:
        if not self.db:
            return None
        return self.query_documents(
            lambda query: query.order_by("createdAt", direction=ASCENDING),
            limit=None,
            collection=self._replies(message_id),
        )

    def send_reply(self, message: Dict[str, Any], reply: SupportReply) -> Optional[Dict[str, Any]]:
        """
        Add a reply. A user replying to a new or resolved message moves it
        back to in-progress so the admins see it again.
        """
        if not self.db:
            return None

        try:
            data = reply.to_document(timezone.now())
            _, doc_ref = self._replies(message["id"]).add(data)
            data["id"] = doc_ref.id

            if reply.sender == "user" and message.get("status") in (SUPPORT_STATUS_RESOLVED, SUPPORT_STATUS_NEW):
                self.collection.document(message["id"]).update({"status": SUPPORT_STATUS_IN_PROGRESS})
            return data
        except Exception as e:
            logger.error(f"Error sending reply to {message.get('id')}: {e}")
            return None


class FAQRepository(FirestoreService):
    COLLECTION = FAQS_COLLECTION
    CACHE_TTL_KEY = "faqs"

    def get_faqs(self) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.order_by("order", direction=ASCENDING),
            limit=None,
            cache_key="list",
        )

    def get_faq(self, faq_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(faq_id)

    def add_faq(self, question: str, answer: str) -> Optional[Dict[str, Any]]:
        """New FAQs go to the end of the list."""
        faqs = self.get_faqs()
        if faqs is None:
            return None

        try:
            data = {
                "question": question,
                "answer": answer,
                "order": len(faqs) + 1,
                "createdAt": timezone.now(),
            }
            _, doc_ref = self.collection.add(data)
            self.invalidate_cache()
            data["id"] = doc_ref.id
            return data
        except Exception as e:
            logger.error(f"Error adding FAQ: {e}")
            return None

    def update_faq(self, faq_id: str, data: Dict[str, Any]) -> bool:
        updates = {key: value for key, value in data.items() if key in FAQ_FIELDS}
        updates["updatedAt"] = timezone.now()
        return self.update_document(faq_id, updates)

    def delete_faq(self, faq_id: str) -> bool:
        return self.delete_document(faq_id)


# Singleton instances
support_repository = SupportRepository()
faq_repository = FAQRepository()
