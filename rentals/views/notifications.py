import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, can_access, firebase_login_required, is_admin_request
from ..constants import NOTIFICATION_LIMIT, NOTIFICATION_PRIORITIES, NOTIFICATION_TYPES
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, write_failed
from ..models import NotificationRequest
from ..push_service import push_service
from ..repositories import notification_repository, user_repository
from ..utils import parse_bool, parse_limit, run_async

logger = logging.getLogger("rentals")


@csrf_exempt
def notifications(request):
    if request.method == "GET":
        return _list_notifications(request)
    if request.method == "POST":
        return _create_notification(request)
    return HttpResponseNotAllowed(["GET", "POST"])


@firebase_login_required
def _list_notifications(request):
    if not notification_repository.is_available():
        return firestore_unavailable()

    limit = parse_limit(request.GET.get("limit"), NOTIFICATION_LIMIT)
    if parse_bool(request.GET.get("all")) and is_admin_request(request):
        items = notification_repository.list_all(request.GET.get("type") or None, limit=limit)
    else:
        items = notification_repository.get_notifications(request.firebase_user["uid"], limit=limit)

    if items is None:
        return write_failed("load_notifications")
    return json_response({"notifications": items, "count": len(items)})


@admin_required
def _create_notification(request):
    """
    Create a notification for a user and push it to their device when they
    have registered an FCM token. Push failures do not fail the request.
    """
    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "userId", "type", "title", "message")
    if error:
        return error

    if data["type"] not in NOTIFICATION_TYPES:
        return JsonResponse({"error": "invalid_type", "allowed": list(NOTIFICATION_TYPES)}, status=400)
    priority = data.get("priority") or "NORMAL"
    if priority not in NOTIFICATION_PRIORITIES:
        return JsonResponse({"error": "invalid_priority", "allowed": list(NOTIFICATION_PRIORITIES)}, status=400)
    action_data = data.get("actionData") or {}
    if not isinstance(action_data, dict):
        return JsonResponse({"error": "actionData must be an object"}, status=400)

    if not notification_repository.is_available():
        return firestore_unavailable()

    notification = notification_repository.create_notification(
        NotificationRequest(
            userId=data["userId"],
            type=data["type"],
            title=data["title"],
            message=data["message"],
            actionText=data.get("actionText") or "",
            actionData=action_data,
            priority=priority,
        ),
        created_by=request.firebase_user["uid"],
    )
    if not notification:
        return write_failed("create_notification")

    push_sent = False
    push_error = None

    user = user_repository.get_user(data["userId"])
    fcm_token = (user or {}).get("fcmToken")
    if fcm_token:
        result = run_async(push_service.send_notification_push(fcm_token, notification))
        if result.success:
            push_sent = True
        else:
            push_error = result.error
            logger.warning(f"[NOTIFICATIONS] Push failed: {result.error}")
    else:
        push_error = "firestore_error" if user is None else "no_fcm_token"

    logger.info(f"[NOTIFICATIONS] Created {notification['id']} for {data['userId']}, push_sent={push_sent}")
    return json_response({
        "notification": notification,
        "pushSent": push_sent,
        "pushError": push_error,
    }, status=201)


@csrf_exempt
@firebase_login_required
def unread_count(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not notification_repository.is_available():
        return firestore_unavailable()

    count = notification_repository.get_unread_count(request.firebase_user["uid"])
    if count is None:
        return write_failed("count_notifications")
    return JsonResponse({"unreadCount": count})


def _owned_notification(request, notification_id: str):
    notification = notification_repository.get_notification(notification_id)
    if not notification:
        return None, not_found("notification")
    if not can_access(request, notification.get("userId")):
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return notification, None


@csrf_exempt
@firebase_login_required
def mark_read(request, notification_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    if not notification_repository.is_available():
        return firestore_unavailable()

    _, error = _owned_notification(request, notification_id)
    if error:
        return error

    if not notification_repository.mark_as_read(notification_id):
        return write_failed("mark_read")
    return JsonResponse({"id": notification_id, "read": True})


@csrf_exempt
@firebase_login_required
def mark_all_read(request):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    if not notification_repository.is_available():
        return firestore_unavailable()

    count = notification_repository.mark_all_as_read(request.firebase_user["uid"])
    if count is None:
        return write_failed("mark_all_read")
    return JsonResponse({"updated": count})


@csrf_exempt
@firebase_login_required
def notification_detail(request, notification_id: str):
    if request.method != "DELETE":
        return HttpResponseNotAllowed(["DELETE"])

    if not notification_repository.is_available():
        return firestore_unavailable()

    _, error = _owned_notification(request, notification_id)
    if error:
        return error

    if not notification_repository.delete_notification(notification_id):
        return write_failed("delete_notification")
    return JsonResponse({"deleted": True, "id": notification_id})


@csrf_exempt
@firebase_login_required
def clear_notifications(request):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    if not notification_repository.is_available():
        return firestore_unavailable()

    count = notification_repository.clear_all(request.firebase_user["uid"])
    if count is None:
        return write_failed("clear_notifications")
    return JsonResponse({"deleted": count})
