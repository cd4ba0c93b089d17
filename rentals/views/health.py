from django.http import JsonResponse, HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..dedup import request_deduplicator
from ..repositories import bike_repository


@csrf_exempt
def health(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    firestore_ok = bike_repository.is_available()

    return JsonResponse({
        "status": "ok",
        "firestore": "connected" if firestore_ok else "not_configured",
        "cache": request_deduplicator.get_stats(),
    })
