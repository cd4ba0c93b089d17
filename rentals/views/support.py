import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, can_access, firebase_login_required
from ..constants import SUPPORT_STATUSES
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, write_failed
from ..models import NotificationRequest, SupportMessage, SupportReply
from ..repositories import faq_repository, notification_repository, support_repository

logger = logging.getLogger("rentals")


def _owned_message(request, message_id: str):
    message = support_repository.get_message(message_id)
    if not message:
        return None, not_found("message")
    if not can_access(request, message.get("userId")):
        return None, JsonResponse({"error": "forbidden"}, status=403)
    return message, None


@csrf_exempt
@firebase_login_required
def support_messages(request):
    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    user_id = request.firebase_user["uid"]

    if request.method == "GET":
        if not support_repository.is_available():
            return firestore_unavailable()
        items = support_repository.get_user_messages(user_id)
        if items is None:
            return write_failed("load_messages")
        return json_response({"messages": items, "count": len(items)})

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "subject", "message")
    if error:
        return error

    if not support_repository.is_available():
        return firestore_unavailable()

    message = support_repository.submit_message(SupportMessage(
        userId=user_id,
        subject=str(data["subject"]).strip(),
        message=str(data["message"]).strip(),
        userName=data.get("userName") or "",
        userEmail=data.get("userEmail") or request.firebase_user.get("email") or "",
        userPhone=data.get("userPhone") or "",
    ))
    if not message:
        return write_failed("submit_message")
    return json_response({"message": message}, status=201)


@csrf_exempt
@admin_required
def admin_support_messages(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not support_repository.is_available():
        return firestore_unavailable()

    items = support_repository.get_all_messages()
    if items is None:
        return write_failed("load_messages")

    status = request.GET.get("status")
    if status:
        items = [item for item in items if item.get("status") == status]
    return json_response({"messages": items, "count": len(items)})


@csrf_exempt
@firebase_login_required
def support_message_detail(request, message_id: str):
    if request.method != "DELETE":
        return HttpResponseNotAllowed(["DELETE"])

    if not support_repository.is_available():
        return firestore_unavailable()

    _, error = _owned_message(request, message_id)
    if error:
        return error

    if not support_repository.delete_message(message_id):
        return write_failed("delete_message")
    return JsonResponse({"deleted": True, "id": message_id})


@csrf_exempt
@admin_required
def support_message_status(request, message_id: str):
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    status = data.get("status")
    if status not in SUPPORT_STATUSES:
        return JsonResponse({"error": "invalid_status", "allowed": list(SUPPORT_STATUSES)}, status=400)

    if not support_repository.is_available():
        return firestore_unavailable()

    if not support_repository.get_message(message_id):
        return not_found("message")

    if not support_repository.update_status(message_id, status):
        return write_failed("update_status")
    return JsonResponse({"id": message_id, "status": status})


@csrf_exempt
@admin_required
def support_message_respond(request, message_id: str):
    """Resolve a message with an admin response and notify its author."""
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "response")
    if error:
        return error

    if not support_repository.is_available():
        return firestore_unavailable()

    message = support_repository.get_message(message_id)
    if not message:
        return not_found("message")

    if not support_repository.send_response(message_id, str(data["response"])):
        return write_failed("send_response")

    notification = notification_repository.create_notification(
        NotificationRequest(
            userId=message["userId"],
            type="ADMIN_REPLY",
            title="Support Response",
            message=f"We replied to your message: {message.get('subject', '')}",
            actionText="View Message",
            actionData={"messageId": message_id},
        ),
        created_by=request.firebase_user["uid"],
    )
    if not notification:
        logger.warning(f"[SUPPORT] Response to {message_id} saved but notification failed")

    return JsonResponse({"id": message_id, "status": "resolved"})


@csrf_exempt
@firebase_login_required
def support_message_replies(request, message_id: str):
    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    if not support_repository.is_available():
        return firestore_unavailable()

    message, error = _owned_message(request, message_id)
    if error:
        return error

    if request.method == "GET":
        replies = support_repository.get_replies(message_id)
        if replies is None:
            return write_failed("load_replies")
        return json_response({"replies": replies, "count": len(replies)})

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "text")
    if error:
        return error

    user_id = request.firebase_user["uid"]
    sender = "user" if message.get("userId") == user_id else "admin"
    reply = support_repository.send_reply(message, SupportReply(
        text=str(data["text"]),
        sender=sender,
        userId=user_id,
        imageUrl=data.get("imageUrl"),
    ))
    if not reply:
        return write_failed("send_reply")
    return json_response({"reply": reply}, status=201)


@csrf_exempt
def faqs(request):
    if request.method == "GET":
        return _list_faqs(request)
    if request.method == "POST":
        return _add_faq(request)
    return HttpResponseNotAllowed(["GET", "POST"])


def _list_faqs(request):
    if not faq_repository.is_available():
        return firestore_unavailable()

    items = faq_repository.get_faqs()
    if items is None:
        return write_failed("load_faqs")
    return json_response({"faqs": items, "count": len(items)})


@admin_required
def _add_faq(request):
    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "question", "answer")
    if error:
        return error

    if not faq_repository.is_available():
        return firestore_unavailable()

    faq = faq_repository.add_faq(str(data["question"]), str(data["answer"]))
    if not faq:
        return write_failed("add_faq")
    return json_response({"faq": faq}, status=201)


@csrf_exempt
@admin_required
def faq_detail(request, faq_id: str):
    if request.method not in ("PATCH", "DELETE"):
        return HttpResponseNotAllowed(["PATCH", "DELETE"])

    if request.method == "PATCH":
        data, error = json_body(request)
        if error:
            return error

    if not faq_repository.is_available():
        return firestore_unavailable()

    if not faq_repository.get_faq(faq_id):
        return not_found("faq")

    if request.method == "DELETE":
        if not faq_repository.delete_faq(faq_id):
            return write_failed("delete_faq")
        return JsonResponse({"deleted": True, "id": faq_id})

    if not faq_repository.update_faq(faq_id, data):
        return write_failed("update_faq")
    return json_response({"faq": faq_repository.get_faq(faq_id)})
