import logging

from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required, firebase_login_required, is_admin_request
from ..constants import PAYMENT_CONFIRMED, PAYMENT_PENDING, PAYMENT_REJECTED, PAYMENT_STATUSES
from ..http import firestore_unavailable, json_body, json_response, missing_fields, not_found, write_failed
from ..models import NotificationRequest, Payment
from ..repositories import notification_repository, payment_repository, payment_settings_repository
from ..utils import parse_bool

logger = logging.getLogger("rentals")


@csrf_exempt
def payment_settings(request):
    if request.method == "GET":
        return JsonResponse({"settings": payment_settings_repository.get_payment_settings().to_dict()})
    if request.method == "PUT":
        return _update_payment_settings(request)
    return HttpResponseNotAllowed(["GET", "PUT"])


@admin_required
def _update_payment_settings(request):
    data, error = json_body(request)
    if error:
        return error

    if not payment_settings_repository.is_available():
        return firestore_unavailable()

    settings = payment_settings_repository.update_payment_settings(data)
    if settings is None:
        return write_failed("update_payment_settings")

    logger.info(f"[PAYMENTS/SETTINGS] Updated by {request.firebase_user['uid']}")
    return JsonResponse({"settings": settings.to_dict()})


@csrf_exempt
@firebase_login_required
def payments(request):
    if request.method not in ("GET", "POST"):
        return HttpResponseNotAllowed(["GET", "POST"])

    user_id = request.firebase_user["uid"]

    if request.method == "GET":
        if not payment_repository.is_available():
            return firestore_unavailable()

        status = request.GET.get("status") or None
        if parse_bool(request.GET.get("all")) and is_admin_request(request):
            items = payment_repository.list_payments(status=status)
        else:
            items = payment_repository.list_payments(user_id=user_id, status=status)
        if items is None:
            return write_failed("load_payments")
        return json_response({"payments": items, "count": len(items)})

    data, error = json_body(request)
    if error:
        return error

    error = missing_fields(data, "mobileNumber", "referenceNumber", "amount")
    if error:
        return error

    payment = Payment.from_dict(user_id, data)
    if payment.amount <= 0:
        return JsonResponse({"error": "amount must be positive"}, status=400)

    if not payment_repository.is_available():
        return firestore_unavailable()

    created = payment_repository.create_payment(payment)
    if not created:
        return write_failed("create_payment")
    return json_response({"payment": created}, status=201)


@csrf_exempt
@admin_required
def payment_status(request, payment_id: str):
    """Confirm or reject a pending payment and tell the payer."""
    if request.method != "POST":
        return HttpResponseNotAllowed(["POST"])

    data, error = json_body(request)
    if error:
        return error

    status = data.get("status")
    if status not in (PAYMENT_CONFIRMED, PAYMENT_REJECTED):
        return JsonResponse({"error": "invalid_status", "allowed": list(PAYMENT_STATUSES[1:])}, status=400)

    if not payment_repository.is_available():
        return firestore_unavailable()

    payment = payment_repository.get_payment(payment_id)
    if not payment:
        return not_found("payment")
    if payment.get("status") != PAYMENT_PENDING:
        return JsonResponse({"error": "payment_already_processed", "status": payment.get("status")}, status=409)

    admin_uid = request.firebase_user["uid"]
    if not payment_repository.update_payment_status(payment_id, status, admin_uid, data.get("notes") or ""):
        return write_failed("update_payment_status")

    confirmed = status == PAYMENT_CONFIRMED
    notification_repository.create_notification(
        NotificationRequest(
            userId=payment["userId"],
            type="PAYMENT_SUCCESS" if confirmed else "PAYMENT_APPROVAL",
            title="Payment Confirmed" if confirmed else "Payment Rejected",
            message=(
                f"Your payment of ₱{payment.get('amount', 0)} (ref {payment.get('referenceNumber', '')}) "
                f"has been {'confirmed' if confirmed else 'rejected'}."
            ),
            actionData={"paymentId": payment_id},
            priority="NORMAL" if confirmed else "HIGH",
        ),
        created_by=admin_uid,
    )

    logger.info(f"[PAYMENTS/STATUS] {payment_id} -> {status} by {admin_uid}")
    return JsonResponse({"id": payment_id, "status": status})
