import logging
from functools import wraps

from django.http import JsonResponse
from firebase_admin import auth as firebase_auth

from .firebase_service import get_firebase_app
from .http import bearer_token
from .repositories.users import user_repository

logger = logging.getLogger("rentals")


class FirebaseUnavailable(Exception):
    pass


def decode_token(token: str) -> dict:
    """Verify a Firebase ID token and return its claims."""
    app = get_firebase_app()
    if app is None:
        raise FirebaseUnavailable("Firebase Admin is not configured")
    return firebase_auth.verify_id_token(token, app=app)


def is_admin_request(request) -> bool:
    user = getattr(request, "firebase_user", None)
    if not user:
        return False
    if "is_admin" not in user:
        user["is_admin"] = user_repository.is_admin(user["uid"])
    return user["is_admin"]


def firebase_login_required(view):
    """Authenticate the request; sets request.firebase_user = {uid, email, ...}."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        token = bearer_token(request)
        if not token:
            return JsonResponse({"error": "authentication_required"}, status=401)

        try:
            claims = decode_token(token)
        except FirebaseUnavailable:
            return JsonResponse({"error": "firebase_unavailable"}, status=503)
        except Exception as e:
            logger.info(f"[AUTH] Rejected token: {e}")
            return JsonResponse({"error": "invalid_token"}, status=401)

        if claims.get("blocked"):
            return JsonResponse({"error": "user_blocked"}, status=403)

        request.firebase_user = {
            "uid": claims.get("uid") or claims.get("sub"),
            "email": claims.get("email"),
            "claims": claims,
        }
        return view(request, *args, **kwargs)

    return wrapper


def admin_required(view):
    @firebase_login_required
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not is_admin_request(request):
            return JsonResponse({"error": "admin_required"}, status=403)
        return view(request, *args, **kwargs)

    return wrapper


def can_access(request, owner_id: str) -> bool:
    """Users act on their own resources; admins on anyone's."""
    return request.firebase_user["uid"] == owner_id or is_admin_request(request)
