import json
from typing import Optional, Tuple

from django.http import JsonResponse

from .utils import serialize_document


def json_body(request) -> Tuple[dict, JsonResponse]:
    try:
        body = request.body.decode("utf-8") if request.body else "{}"
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("JSON body must be an object")
        return data, None
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as exc:
        return None, JsonResponse({"error": f"invalid_json: {exc}"}, status=400)


def missing_fields(data: dict, *fields) -> Optional[JsonResponse]:
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        return JsonResponse({
            "error": "missing_fields",
            "required": list(fields),
            "missing": missing,
        }, status=400)
    return None


def firestore_unavailable() -> JsonResponse:
    return JsonResponse({
        "error": "firestore_unavailable",
        "message": "Firebase Firestore is not configured",
    }, status=503)


def not_found(what: str) -> JsonResponse:
    return JsonResponse({"error": f"{what}_not_found"}, status=404)


def write_failed(action: str) -> JsonResponse:
    return JsonResponse({"error": f"failed_to_{action}"}, status=500)


def bearer_token(request) -> Optional[str]:
    header = request.META.get("HTTP_AUTHORIZATION", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def json_response(payload, status: int = 200) -> JsonResponse:
    """JsonResponse for Firestore data (timestamps, GeoPoints)."""
    return JsonResponse(serialize_document(payload), status=status, safe=not isinstance(payload, list))


def truncate(items: list, limit: int) -> Tuple[list, bool]:
    """Callers fetch limit + 1 items; the extra one tells them more exist."""
    return items[:limit], len(items) > limit
