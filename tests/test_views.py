import json
from unittest.mock import patch

import pytest

from rentals.push_service import PushResult, push_service

from .conftest import bearer

LOCATION = {"latitude": 14.5890, "longitude": 120.9760}


def post_json(client, url, data, **headers):
    return client.post(url, data=json.dumps(data), content_type="application/json", **headers)


def patch_json(client, url, data, **headers):
    return client.patch(url, data=json.dumps(data), content_type="application/json", **headers)


# Health


def test_health_reports_firestore_and_cache(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["firestore"] == "connected"
    assert body["cache"]["cacheSize"] == 0


def test_health_without_firestore(client, no_firestore):
    assert client.get("/api/health").json()["firestore"] == "not_configured"


def test_health_rejects_post(client):
    assert client.post("/api/health").status_code == 405


# Auth


def test_missing_token_is_401(client):
    assert client.get("/api/rides/active").status_code == 401


def test_invalid_token_is_401(client):
    response = client.get("/api/rides/active", HTTP_AUTHORIZATION="Bearer garbage")
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


def test_blocked_user_is_403(client, rider):
    response = client.get("/api/rides/active", **bearer("rider1", blocked=True))
    assert response.status_code == 403
    assert response.json()["error"] == "user_blocked"


def test_admin_endpoint_rejects_regular_users(client, rider):
    assert client.get("/api/users", **rider).status_code == 403


def test_user_list_flags_truncation(client, admin, fake_db):
    for i in range(205):
        fake_db.put("users", f"user{i}", {"fullName": f"User {i}"})
    body = client.get("/api/users", **admin).json()
    assert body["count"] == 200
    assert len(body["users"]) == 200
    assert body["truncated"] is True


# Bikes


def test_list_bikes_is_public(client, bike, fake_db):
    fake_db.put("bikes", "bike2", {"name": "Road", "type": "Road", "isAvailable": False})
    body = client.get("/api/bikes").json()
    assert body["count"] == 2
    assert body["truncated"] is False

    body = client.get("/api/bikes?available=1").json()
    assert [b["id"] for b in body["bikes"]] == ["bike1"]


def test_list_bikes_without_firestore(client, no_firestore):
    assert client.get("/api/bikes").status_code == 503


def test_create_bike_requires_admin_and_fields(client, admin, rider):
    data = {"name": "Trail", "type": "Mountain", "priceValue": 30}
    assert post_json(client, "/api/bikes", data, **rider).status_code == 403

    response = post_json(client, "/api/bikes", {"name": "Trail"}, **admin)
    assert response.status_code == 400
    assert response.json()["missing"] == ["type", "priceValue"]

    response = post_json(client, "/api/bikes", data, **admin)
    assert response.status_code == 201
    assert response.json()["bike"]["price"] == "₱30/hr"


def test_get_unknown_bike_is_404(client):
    response = client.get("/api/bikes/missing")
    assert response.status_code == 404
    assert response.json()["error"] == "bike_not_found"


def test_update_and_delete_bike(client, admin, bike):
    response = patch_json(client, "/api/bikes/bike1", {"name": "Renamed"}, **admin)
    assert response.json()["bike"]["name"] == "Renamed"

    response = client.delete("/api/bikes/bike1", **admin)
    assert response.status_code == 200
    assert client.get("/api/bikes/bike1").status_code == 404


def test_bike_location_validates_coordinates(client, admin, bike):
    response = post_json(client, "/api/bikes/bike1/location", {"latitude": 0, "longitude": 0}, **admin)
    assert response.status_code == 400

    response = post_json(client, "/api/bikes/bike1/location", {"latitude": 14.6, "longitude": 121.0}, **admin)
    assert response.status_code == 200


def test_bike_types(client, bike):
    assert client.get("/api/bikes/types").json() == {"types": ["Electric"]}


# Rides


def start_ride(client, headers, bike_id="bike1"):
    return post_json(client, "/api/rides/start", {"bikeId": bike_id, "location": LOCATION}, **headers)


def test_ride_lifecycle(client, rider, bike, fake_db):
    response = start_ride(client, rider)
    assert response.status_code == 201
    ride_id = response.json()["ride"]["id"]

    active = client.get("/api/rides/active", **rider).json()["ride"]
    assert active["id"] == ride_id

    response = post_json(
        client, f"/api/rides/{ride_id}/location",
        {"location": {"latitude": 14.5900, "longitude": 120.9760, "speed": 12}},
        **rider,
    )
    assert response.status_code == 200
    assert response.json()["pathPointCount"] == 2

    response = post_json(client, f"/api/rides/{ride_id}/end", {"location": {"latitude": 14.5910, "longitude": 120.9760}}, **rider)
    assert response.status_code == 200
    ride = response.json()["ride"]
    assert ride["status"] == "completed"
    assert ride["cost"] == 6.25  # 15 minute minimum at 25/hr
    assert "display" in ride

    assert fake_db.read("bikes", "bike1")["isAvailable"] is True
    assert client.get("/api/rides/active", **rider).json()["ride"] is None

    history = client.get("/api/rides/history", **rider).json()
    assert history["count"] == 1

    stats = client.get("/api/rides/stats", **rider).json()
    assert stats["totalRides"] == 1


def test_cannot_start_ride_on_bike_in_use(client, rider, bike, fake_db):
    fake_db.put("bikes", "bike1", {**bike, "isInUse": True, "isAvailable": False})
    response = start_ride(client, rider)
    assert response.status_code == 409
    assert response.json()["error"] == "bike_unavailable"


def test_cannot_start_second_ride(client, rider, bike, fake_db):
    fake_db.put("bikes", "bike2", {**bike, "id": "bike2"})
    assert start_ride(client, rider).status_code == 201
    response = start_ride(client, rider, "bike2")
    assert response.status_code == 409
    assert response.json()["error"] == "active_ride_exists"


def test_start_ride_rejects_invalid_location(client, rider, bike):
    response = post_json(client, "/api/rides/start", {"bikeId": "bike1", "location": {"latitude": 0, "longitude": 0}}, **rider)
    assert response.status_code == 400


def test_other_users_cannot_touch_a_ride(client, rider, bike, fake_db):
    ride_id = start_ride(client, rider).json()["ride"]["id"]
    fake_db.put("users", "rider2", {"role": "User"})
    response = post_json(client, f"/api/rides/{ride_id}/cancel", {}, **bearer("rider2"))
    assert response.status_code == 403


def test_ending_a_finished_ride_is_409(client, rider, bike):
    ride_id = start_ride(client, rider).json()["ride"]["id"]
    assert post_json(client, f"/api/rides/{ride_id}/cancel", {}, **rider).status_code == 200
    response = post_json(client, f"/api/rides/{ride_id}/end", {}, **rider)
    assert response.status_code == 409


def test_admin_rides(client, admin, rider, bike):
    start_ride(client, rider)
    body = client.get("/api/admin/rides?active=1", **admin).json()
    assert body["count"] == 1


def test_route_estimate_without_api_key(client, rider, settings):
    settings.GOOGLE_MAPS_API_KEY = ""
    response = post_json(client, "/api/rides/route", {
        "origin": LOCATION,
        "destination": {"latitude": 14.5990, "longitude": 120.9760},
    }, **rider)
    assert response.status_code == 200
    body = response.json()
    assert body["source"] == "estimate"
    assert body["routes"][0]["distanceMeters"] == 1112


def test_route_rejects_unknown_mode(client, rider):
    response = post_json(client, "/api/rides/route", {
        "origin": LOCATION, "destination": LOCATION, "mode": "flying",
    }, **rider)
    assert response.status_code == 400


# Users


def test_user_me_get_and_patch(client, rider):
    assert client.get("/api/users/me", **rider).json()["user"]["fullName"] == "Rider One"

    response = patch_json(client, "/api/users/me", {"phoneNumber": "0917", "role": "Admin"}, **rider)
    user = response.json()["user"]
    assert user["phoneNumber"] == "0917"
    assert user["role"] == "User"


def test_admin_updates_verification(client, admin, rider, fake_db):
    response = post_json(client, "/api/users/rider1/verification", {"status": "approved"}, **admin)
    assert response.status_code == 200
    assert fake_db.read("users", "rider1")["idVerificationStatus"] == "approved"

    response = post_json(client, "/api/users/rider1/verification", {"status": "maybe"}, **admin)
    assert response.status_code == 400


def test_admin_updates_role(client, admin, rider, fake_db):
    post_json(client, "/api/users/rider1/role", {"role": "Admin"}, **admin)
    assert fake_db.read("users", "rider1")["isAdmin"] is True


# Notifications


def test_create_notification_pushes_to_device(client, admin, rider, fake_db):
    fake_db.put("users", "rider1", {**fake_db.read("users", "rider1"), "fcmToken": "token-123"})

    with patch.object(push_service.fcm, "send_notification") as send:
        send.return_value = PushResult(success=True, message_id="m1")
        response = post_json(client, "/api/notifications", {
            "userId": "rider1", "type": "ADMIN_MESSAGE", "title": "Hello", "message": "Welcome",
        }, **admin)

    assert response.status_code == 201
    body = response.json()
    assert body["pushSent"] is True
    assert body["notification"]["read"] is False
    assert send.call_args.args[0] == "token-123"


def test_create_notification_without_token_still_succeeds(client, admin, rider):
    response = post_json(client, "/api/notifications", {
        "userId": "rider1", "type": "GENERAL", "title": "Hi", "message": "There",
    }, **admin)
    assert response.status_code == 201
    assert response.json()["pushSent"] is False
    assert response.json()["pushError"] == "no_fcm_token"


def test_create_notification_rejects_unknown_type(client, admin):
    response = post_json(client, "/api/notifications", {
        "userId": "rider1", "type": "SPAM", "title": "Hi", "message": "There",
    }, **admin)
    assert response.status_code == 400


def test_notification_inbox(client, admin, rider):
    for title in ("one", "two"):
        post_json(client, "/api/notifications", {
            "userId": "rider1", "type": "GENERAL", "title": title, "message": "m",
        }, **admin)

    inbox = client.get("/api/notifications", **rider).json()
    assert inbox["count"] == 2
    first_id = inbox["notifications"][0]["id"]

    assert client.get("/api/notifications/unread-count", **rider).json() == {"unreadCount": 2}
    assert client.post(f"/api/notifications/{first_id}/read", **rider).status_code == 200
    assert client.get("/api/notifications/unread-count", **rider).json() == {"unreadCount": 1}
    assert client.post("/api/notifications/read-all", **rider).json() == {"updated": 1}

    assert client.delete(f"/api/notifications/{first_id}", **rider).status_code == 200
    assert client.post("/api/notifications/clear", **rider).json() == {"deleted": 1}


def test_cannot_read_someone_elses_notification(client, admin, rider, fake_db):
    post_json(client, "/api/notifications", {
        "userId": "admin1", "type": "GENERAL", "title": "t", "message": "m",
    }, **admin)
    notification_id = next(iter(fake_db.all("notifications")))
    assert client.post(f"/api/notifications/{notification_id}/read", **rider).status_code == 403


# Support


def test_support_conversation(client, admin, rider, fake_db):
    response = post_json(client, "/api/support/messages", {"subject": "Flat tire", "message": "Help"}, **rider)
    assert response.status_code == 201
    message_id = response.json()["message"]["id"]
    assert response.json()["message"]["userEmail"] == "rider1@example.com"

    assert client.get("/api/admin/support/messages", **admin).json()["count"] == 1

    response = post_json(client, f"/api/support/messages/{message_id}/respond", {"response": "On our way"}, **admin)
    assert response.status_code == 200
    notifications = fake_db.all("notifications").values()
    assert [n["type"] for n in notifications] == ["ADMIN_REPLY"]

    response = post_json(client, f"/api/support/messages/{message_id}/replies", {"text": "Thanks"}, **rider)
    assert response.json()["reply"]["sender"] == "user"
    assert fake_db.read("supportMessages", message_id)["status"] == "in-progress"

    replies = client.get(f"/api/support/messages/{message_id}/replies", **rider).json()
    assert replies["count"] == 1


def test_support_status_validation(client, admin, rider):
    message_id = post_json(client, "/api/support/messages", {"subject": "s", "message": "m"}, **rider).json()["message"]["id"]
    response = post_json(client, f"/api/support/messages/{message_id}/status", {"status": "closed"}, **admin)
    assert response.status_code == 400
    response = post_json(client, f"/api/support/messages/{message_id}/status", {"status": "resolved"}, **admin)
    assert response.status_code == 200


def test_faqs(client, admin):
    assert post_json(client, "/api/faqs", {"question": "Q", "answer": "A"}).status_code == 401

    response = post_json(client, "/api/faqs", {"question": "Q", "answer": "A"}, **admin)
    faq_id = response.json()["faq"]["id"]
    assert client.get("/api/faqs").json()["count"] == 1

    response = patch_json(client, f"/api/faqs/{faq_id}", {"answer": "B"}, **admin)
    assert response.json()["faq"]["answer"] == "B"

    assert client.delete(f"/api/faqs/{faq_id}", **admin).status_code == 200
    assert client.get("/api/faqs").json()["count"] == 0


# Payments


def test_payment_settings_defaults_and_update(client, admin):
    assert client.get("/api/settings/payment").json()["settings"]["businessName"] == "Bambike Cycles"

    response = client.put(
        "/api/settings/payment", data=json.dumps({"gcashNumber": "09170000000"}),
        content_type="application/json", **admin,
    )
    assert response.json()["settings"]["gcashNumber"] == "09170000000"
    assert client.get("/api/settings/payment").json()["settings"]["gcashNumber"] == "09170000000"


def test_payment_submission_and_review(client, admin, rider, fake_db):
    response = post_json(client, "/api/payments", {
        "mobileNumber": "09171234567", "referenceNumber": "REF1", "amount": 50,
    }, **rider)
    assert response.status_code == 201
    payment_id = response.json()["payment"]["id"]
    assert response.json()["payment"]["status"] == "PENDING"

    response = post_json(client, f"/api/payments/{payment_id}/status", {"status": "CONFIRMED"}, **admin)
    assert response.status_code == 200
    stored = fake_db.read("payments", payment_id)
    assert stored["status"] == "CONFIRMED"
    assert stored["processedBy"] == "admin1"

    response = post_json(client, f"/api/payments/{payment_id}/status", {"status": "REJECTED"}, **admin)
    assert response.status_code == 409


def test_payment_amount_must_be_positive(client, rider):
    response = post_json(client, "/api/payments", {
        "mobileNumber": "0917", "referenceNumber": "R", "amount": -5,
    }, **rider)
    assert response.status_code == 400


# Bookings


BOOKING_WINDOW = {"startTime": "2026-11-01T10:00:00Z", "endTime": "2026-11-01T12:00:00Z"}


def test_booking_flow(client, admin, rider, bike, fake_db):
    response = post_json(client, "/api/bookings", {"bikeId": "bike1", **BOOKING_WINDOW, "status": "CONFIRMED"}, **rider)
    assert response.status_code == 201
    booking = response.json()["booking"]
    assert booking["status"] == "PENDING"
    assert booking["totalPrice"] == 50.0
    assert booking["bikeName"] == "City Cruiser"
    assert booking["duration"] == "2h 0m"

    response = post_json(client, "/api/bookings", {
        "bikeId": "bike1", "startTime": "2026-11-01T11:00:00Z", "endTime": "2026-11-01T13:00:00Z",
    }, **rider)
    assert response.status_code == 409

    availability = client.get(
        "/api/bookings/availability?bikeId=bike1&start=2026-11-01T12:30:00Z&end=2026-11-01T13:00:00Z"
    ).json()
    assert availability["available"] is True

    response = patch_json(client, f"/api/bookings/{booking['id']}", {"status": "CONFIRMED"}, **rider)
    assert response.status_code == 403

    response = patch_json(client, f"/api/bookings/{booking['id']}", {"status": "CONFIRMED"}, **admin)
    assert response.status_code == 200
    assert [n["type"] for n in fake_db.all("notifications").values()] == ["BOOKING_CONFIRMATION"]

    assert client.get("/api/bookings", **rider).json()["count"] == 1


def test_booking_rejects_bad_window(client, rider, bike):
    response = post_json(client, "/api/bookings", {
        "bikeId": "bike1", "startTime": "2026-11-01T12:00:00Z", "endTime": "2026-11-01T10:00:00Z",
    }, **rider)
    assert response.status_code == 400


def test_revenue_requires_valid_period(client, admin):
    assert client.get("/api/admin/bookings/revenue?period=year", **admin).status_code == 400
    body = client.get("/api/admin/bookings/revenue?period=week", **admin).json()
    assert body["totalRevenue"] == 0


# Analytics


def test_admin_analytics(client, admin, rider, bike):
    start_ride(client, rider)
    body = client.get("/api/admin/analytics", **admin).json()
    assert body["stats"]["totalBikes"] == 1
    assert body["stats"]["inUseBikes"] == 1
    assert body["stats"]["activeRides"] == 1
    assert body["stats"]["totalUsers"] == 2
    assert len(body["recentRides"]) == 1


@pytest.mark.parametrize("url", ["/api/admin/analytics", "/api/admin/rides", "/api/users"])
def test_admin_views_reject_anonymous(client, url):
    assert client.get(url).status_code == 401
