import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import ADMIN_ROLE_NAMES, ADMINS_COLLECTION, MAX_QUERY_LIMIT, USERS_COLLECTION
from ..firebase_service import FirestoreService

logger = logging.getLogger("rentals")

# Profile fields a user may edit on their own document
PROFILE_FIELDS = {"fullName", "displayName", "givenName", "familyName", "phoneNumber", "fcmToken"}


def default_role(user: Dict[str, Any]) -> str:
    return user.get("role") or ("Admin" if user.get("isAdmin") else "User")


def is_admin_record(user: Optional[Dict[str, Any]]) -> bool:
    """Admin when role is admin/administrator (any case) or isAdmin is true."""
    if not user:
        return False
    role = user.get("role")
    if isinstance(role, str) and role.lower() in ADMIN_ROLE_NAMES:
        return True
    return user.get("isAdmin") is True or user.get("isAdmin") == "true"


class UserRepository(FirestoreService):
    """User profile operations on users/{uid}."""

    COLLECTION = USERS_COLLECTION
    CACHE_TTL_KEY = "users"

    def list_users(self, limit: Optional[int] = MAX_QUERY_LIMIT) -> Optional[List[Dict[str, Any]]]:
        users = self.query_documents(limit=limit, cache_key=f"list:limit={limit}")
        if users is None:
            return None
        for user in users:
            user["role"] = default_role(user)
        return users

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        user = self.get_document(user_id)
        if user is not None:
            user["role"] = default_role(user)
        return user

    def is_admin(self, user_id: str) -> bool:
        """Check the admins collection first, then the user document."""
        if not self.db:
            return False

        try:
            if self.db.collection(ADMINS_COLLECTION).document(user_id).get().exists:
                return True
            doc = self.collection.document(user_id).get()
            return doc.exists and is_admin_record(doc.to_dict())
        except Exception as e:
            logger.error(f"Error checking admin status for {user_id}: {e}")
            return False

    def update_user_role(self, user_id: str, new_role: str) -> bool:
        return self.update_document(user_id, {
            "role": new_role,
            "isAdmin": new_role.lower() in ADMIN_ROLE_NAMES,
            "updatedAt": timezone.now(),
        })

    def update_verification_status(self, user_id: str, new_status: str) -> bool:
        return self.update_document(user_id, {
            "idVerificationStatus": new_status,
            "lastUpdated": timezone.now(),
        })

    def update_block_status(self, user_id: str, is_blocked: bool) -> bool:
        return self.update_document(user_id, {
            "isBlocked": is_blocked,
            "updatedAt": timezone.now(),
        })

    def update_profile(self, user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        updates = {key: value for key, value in data.items() if key in PROFILE_FIELDS}
        if updates:
            updates["updatedAt"] = timezone.now()
            if not self.update_document(user_id, updates):
                return None
        return self.get_user(user_id)

    def set_profile_picture(self, user_id: str, url: str) -> bool:
        return self.update_document(user_id, {
            "profilePictureUrl": url,
            "updatedAt": timezone.now(),
        })

    def add_ride_to_history(self, user_id: str, ride_id: str) -> bool:
        """Prepend a ride id to users/{uid}.rideHistory."""
        if not self.db:
            return False

        try:
            doc_ref = self.collection.document(user_id)
            snapshot = doc_ref.get()
            if not snapshot.exists:
                logger.warning(f"User document not found: {user_id}")
                return False
            history = (snapshot.to_dict() or {}).get("rideHistory") or []
            doc_ref.update({"rideHistory": [ride_id] + [rid for rid in history if rid != ride_id]})
            self.invalidate_cache()
            return True
        except Exception as e:
            logger.error(f"Error adding ride {ride_id} to history of {user_id}: {e}")
            return False

    def delete_user(self, user_id: str) -> bool:
        return self.delete_document(user_id)


# Singleton instance
user_repository = UserRepository()
