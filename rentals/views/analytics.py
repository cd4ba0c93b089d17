from django.http import HttpResponseNotAllowed
from django.views.decorators.csrf import csrf_exempt

from ..auth import admin_required
from ..http import firestore_unavailable, json_response, write_failed
from ..repositories import analytics_repository
from ..ride_metrics import summarize_ride


@csrf_exempt
@admin_required
def analytics(request):
    if request.method != "GET":
        return HttpResponseNotAllowed(["GET"])

    if not analytics_repository.is_available():
        return firestore_unavailable()

    data = analytics_repository.get_analytics_data()
    if data is None:
        return write_failed("load_analytics")

    data["recentRides"] = [summarize_ride(ride) for ride in data["recentRides"]]
    return json_response(data)
