import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, firebase_login_required
from ..constants import MAX_QUERY_LIMIT, VERIFICATION_STATUSES
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, truncate, write_failed
from ..repositories import user_repository
from ..storage_service import InvalidUpload, StorageError, upload_profile_picture

logger = logging.getLogger("rentals")


@csrf_exempt
@admin_required
def users(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not user_repository.is_available():
        return firestore_unavailable()

    items = user_repository.list_users(limit=MAX_QUERY_LIMIT + 1)
    if items is None:
        return write_failed("list_users")
    items, truncated = truncate(items, MAX_QUERY_LIMIT)
    return json_response({"users": items, "count": len(items), "truncated": truncated})


@csrf_exempt
@firebase_login_required
def user_me(request):
    if request.method not in ("GET", "PATCH"):
        return HttpResponseNotAllowed(["GET", "PATCH"])

    if not user_repository.is_available():
        return firestore_unavailable()

    user_id = request.firebase_user["uid"]
    if request.method == "GET":
        user = user_repository.get_user(user_id)
        if not user:
            return not_found("user")
        return json_response({"user": user})

    data, error = json_body(request)
    if error:
        return error

    if not user_repository.get_user(user_id):
        return not_found("user")

    user = user_repository.update_profile(user_id, data)
    if not user:
        return write_failed("update_profile")
    return json_response({"user": user})


@csrf_exempt
@firebase_login_required
def user_profile_picture(request):
    """Multipart upload, field name "file"."""
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    upload = request.FILES.get("file")
    if upload is None:
        return JsonResponse({"error": "missing_fields", "required": ["file"], "missing": ["file"]}, status=400)

    user_id = request.firebase_user["uid"]
    try:
        url = upload_profile_picture(user_id, upload.read(), upload.content_type)
    except InvalidUpload as e:
        return JsonResponse({"error": "invalid_upload", "message": str(e)}, status=400)
    except StorageError as e:
        logger.error(f"[USERS/PICTURE] {user_id}: {e}")
        return JsonResponse({"error": "failed_to_upload_picture"}, status=500)

    return JsonResponse({"profilePictureUrl": url})


@csrf_exempt
@admin_required
def user_role(request, user_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "role")
    if error:
        return error

    if not user_repository.is_available():
        return firestore_unavailable()

    if not user_repository.get_user(user_id):
        return not_found("user")

    if not user_repository.update_user_role(user_id, str(data["role"])):
        return write_failed("update_role")

    logger.info(f"[USERS/ROLE] {user_id} -> {data['role']} by {request.firebase_user['uid']}")
    return JsonResponse({"id": user_id, "role": data["role"]})


@csrf_exempt
@admin_required
def user_verification(request, user_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    status = data.get("status")
    if status not in VERIFICATION_STATUSES:
        return JsonResponse({"error": "invalid_status", "allowed": list(VERIFICATION_STATUSES)}, status=400)

    if not user_repository.is_available():
        return firestore_unavailable()

    if not user_repository.get_user(user_id):
        return not_found("user")

    if not user_repository.update_verification_status(user_id, status):
        return write_failed("update_verification")
    return JsonResponse({"id": user_id, "idVerificationStatus": status})
