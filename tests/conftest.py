import pytest

from rentals import auth, firebase_service
from rentals.dedup import request_deduplicator

from .fakes import FakeFirestore


def fake_decode_token(token):
    """Test tokens look like "uid:<uid>" or "uid:<uid>:blocked"."""
    parts = token.split(":")
    if len(parts) < 2 or parts[0] != "uid":
        raise ValueError("invalid token")
    claims = {"uid": parts[1], "email": f"{parts[1]}@example.com"}
    if "blocked" in parts[2:]:
        claims["blocked"] = True
    return claims


def bearer(uid, blocked=False):
    token = f"uid:{uid}:blocked" if blocked else f"uid:{uid}"
    return {"HTTP_AUTHORIZATION": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(firebase_service, "_firestore_client", db)
    request_deduplicator.clear_all()
    yield db
    request_deduplicator.clear_all()


@pytest.fixture(autouse=True)
def fake_auth(monkeypatch):
    monkeypatch.setattr(auth, "decode_token", fake_decode_token)


@pytest.fixture
def no_firestore(monkeypatch):
    monkeypatch.setattr(firebase_service, "_firestore_client", None)
    monkeypatch.setattr(firebase_service, "get_firebase_app", lambda: None)


@pytest.fixture
def admin(fake_db):
    fake_db.put("users", "admin1", {"fullName": "Admin", "role": "Admin", "email": "admin@example.com"})
    return bearer("admin1")


@pytest.fixture
def rider(fake_db):
    fake_db.put("users", "rider1", {
        "fullName": "Rider One",
        "email": "rider1@example.com",
        "role": "User",
        "rideHistory": [],
    })
    return bearer("rider1")


@pytest.fixture
def bike(fake_db):
    data = {
        "id": "bike1",
        "name": "City Cruiser",
        "type": "Electric",
        "price": "₱25/hr",
        "priceValue": 25.0,
        "latitude": 14.589,
        "longitude": 120.976,
        "isAvailable": True,
        "isInUse": False,
        "isLocked": True,
        "batteryLevel": 90,
    }
    fake_db.put("bikes", "bike1", data)
    return data
