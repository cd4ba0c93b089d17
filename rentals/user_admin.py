"""
Admin operations on Firebase Auth accounts.

These back the deleteUser and updateUserBlockStatus callables the admin
dashboard uses. Auth calls are retried on rate limits.
"""
import logging

from django.core.exceptions import PermissionDenied
from firebase_admin import auth as firebase_auth

from .firebase_service import get_firebase_app
from .rate_limit import call_with_backoff
from .repositories.users import user_repository

logger = logging.getLogger("rentals")


class UserAdminError(Exception):
    """An Auth or Firestore operation failed. `code` maps to the HTTP status."""

    def __init__(self, message: str, code: str = "internal"):
        super().__init__(message)
        self.code = code


def _require_admin(caller_uid: str, action: str) -> None:
    if not caller_uid or not user_repository.is_admin(caller_uid):
        logger.warning(f"[ADMIN] {caller_uid or 'anonymous'} denied: {action}")
        raise PermissionDenied(f"Only admins can {action}")


def delete_user(caller_uid: str, user_id: str) -> dict:
    """
    Delete a user's Auth account and their users/{uid} document.

    A user already missing from Firebase Auth still has their document
    removed.
    """
    _require_admin(caller_uid, "delete users")
    if not user_id:
        raise ValueError("userId is required")

    app = get_firebase_app()
    try:
        call_with_backoff(lambda: firebase_auth.delete_user(user_id, app=app))
        logger.info(f"[ADMIN] Auth user {user_id} deleted by {caller_uid}")
    except firebase_auth.UserNotFoundError:
        logger.info(f"[ADMIN] Auth user {user_id} not found, removing document only")
    except Exception as e:
        logger.error(f"[ADMIN] Failed to delete auth user {user_id}: {e}")
        raise UserAdminError(f"Failed to delete user: {e}") from e

    if not user_repository.delete_user(user_id):
        raise UserAdminError(f"Failed to delete user document {user_id}")

    return {"success": True, "message": "User deleted successfully"}


def update_user_block_status(caller_uid: str, user_id: str, is_blocked) -> dict:
    """Set the `blocked` custom claim and mirror it on the user document."""
    _require_admin(caller_uid, "block users")
    if not user_id:
        raise ValueError("userId is required")
    if not isinstance(is_blocked, bool):
        raise ValueError("isBlocked must be a boolean")

    app = get_firebase_app()
    try:
        call_with_backoff(
            lambda: firebase_auth.set_custom_user_claims(user_id, {"blocked": is_blocked}, app=app)
        )
    except firebase_auth.UserNotFoundError as e:
        raise UserAdminError(f"User {user_id} not found", code="not_found") from e
    except Exception as e:
        logger.error(f"[ADMIN] Failed to set claims for {user_id}: {e}")
        raise UserAdminError(f"Failed to update block status: {e}") from e

    if not user_repository.update_block_status(user_id, is_blocked):
        raise UserAdminError(f"Failed to update user document {user_id}")

    action = "blocked" if is_blocked else "unblocked"
    logger.info(f"[ADMIN] User {user_id} {action} by {caller_uid}")
    return {"success": True, "message": f"User {action} successfully"}
