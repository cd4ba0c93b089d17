import json
from unittest.mock import MagicMock

import pytest
from django.http import JsonResponse
from django.test import RequestFactory

from rentals import auth
from rentals.auth import FirebaseUnavailable, admin_required, can_access, firebase_login_required

# Captured before the autouse fixture swaps in the fake
real_decode_token = auth.decode_token


@firebase_login_required
def whoami(request):
    return JsonResponse(request.firebase_user)


@admin_required
def admin_only(request):
    return JsonResponse({"ok": True})


@pytest.fixture
def rf():
    return RequestFactory()


def test_decode_token_without_firebase(monkeypatch):
    monkeypatch.setattr(auth, "get_firebase_app", lambda: None)
    with pytest.raises(FirebaseUnavailable):
        real_decode_token("token")


def test_decode_token_verifies_with_app(monkeypatch):
    firebase_auth = MagicMock()
    firebase_auth.verify_id_token.return_value = {"uid": "u1"}
    monkeypatch.setattr(auth, "firebase_auth", firebase_auth)
    monkeypatch.setattr(auth, "get_firebase_app", lambda: "app")

    assert real_decode_token("token") == {"uid": "u1"}
    firebase_auth.verify_id_token.assert_called_once_with("token", app="app")


def test_login_required_sets_firebase_user(rf):
    response = whoami(rf.get("/", HTTP_AUTHORIZATION="Bearer uid:u1"))
    assert response.status_code == 200
    body = json.loads(response.content)
    assert body["uid"] == "u1"
    assert body["email"] == "u1@example.com"


@pytest.mark.parametrize("header", ["", "Bearer ", "Basic abc", "Token uid:u1"])
def test_login_required_rejects_missing_bearer(rf, header):
    response = whoami(rf.get("/", HTTP_AUTHORIZATION=header))
    assert response.status_code == 401
    assert json.loads(response.content)["error"] == "authentication_required"


def test_login_required_when_firebase_down(rf, monkeypatch):
    def unavailable(token):
        raise FirebaseUnavailable("down")

    monkeypatch.setattr(auth, "decode_token", unavailable)
    assert whoami(rf.get("/", HTTP_AUTHORIZATION="Bearer x")).status_code == 503


def test_admin_from_admins_collection(rf, fake_db):
    fake_db.put("admins", "boss", {"email": "boss@example.com"})
    assert admin_only(rf.get("/", HTTP_AUTHORIZATION="Bearer uid:boss")).status_code == 200


@pytest.mark.parametrize("record", [
    {"role": "administrator"},
    {"role": "ADMIN"},
    {"isAdmin": True},
    {"isAdmin": "true"},
])
def test_admin_from_user_document(rf, fake_db, record):
    fake_db.put("users", "boss", record)
    assert admin_only(rf.get("/", HTTP_AUTHORIZATION="Bearer uid:boss")).status_code == 200


def test_non_admin_is_rejected(rf, rider):
    response = admin_only(rf.get("/", **rider))
    assert response.status_code == 403
    assert json.loads(response.content)["error"] == "admin_required"


def test_can_access(rf, admin, rider):
    request = rf.get("/")
    request.firebase_user = {"uid": "rider1"}
    assert can_access(request, "rider1")
    assert not can_access(request, "someone-else")

    request.firebase_user = {"uid": "admin1"}
    assert can_access(request, "someone-else")
