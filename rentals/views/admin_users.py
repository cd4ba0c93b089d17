"""
HTTP endpoints for the dashboard's deleteUser / updateUserBlockStatus calls.

Bodies may be sent bare or wrapped in {"data": {...}} as callable clients do.
"""
import logging

from django.core.exceptions import PermissionDenied
from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from .. import user_admin
from ..auth import firebase_login_required
from ..http import json_body

logger = logging.getLogger("rentals")


def _payload(data):
    inner = data.get("data")
    return inner if isinstance(inner, dict) else data


def _error_response(exc):
    if isinstance(exc, PermissionDenied):
        return JsonResponse({"error": "permission_denied", "message": str(exc)}, status=403)
    if isinstance(exc, ValueError):
        return JsonResponse({"error": "invalid_argument", "message": str(exc)}, status=400)
    if exc.code == "not_found":
        return JsonResponse({"error": "user_not_found", "message": str(exc)}, status=404)
    return JsonResponse({"error": "internal", "message": str(exc)}, status=500)


@csrf_exempt
@firebase_login_required
def delete_user(request):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error
    data = _payload(data)

    try:
        result = user_admin.delete_user(request.firebase_user["uid"], data.get("userId"))
    except (PermissionDenied, ValueError, user_admin.UserAdminError) as e:
        return _error_response(e)
    return JsonResponse(result)


@csrf_exempt
@firebase_login_required
def update_user_block_status(request):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error
    data = _payload(data)

    try:
        result = user_admin.update_user_block_status(
            request.firebase_user["uid"], data.get("userId"), data.get("isBlocked")
        )
    except (PermissionDenied, ValueError, user_admin.UserAdminError) as e:
        return _error_response(e)
    return JsonResponse(result)
