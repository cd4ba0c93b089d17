"""
Firestore seed script
Run from the repo root with: python3 -m firebase.seed --confirm [--reset]

Running it as a module keeps the repo root on sys.path, so the rentals
package imports whether or not it is installed.

Seeds the bike fleet, the FAQ list and the GCash payment settings. Works
against the emulator when FIREBASE_USE_EMULATOR=true.
"""

import argparse
import json
import os
import sys
from datetime import datetime, timezone

import firebase_admin
from firebase_admin import credentials, firestore

from rentals.models import Bike, PaymentSettings

SEED_COLLECTIONS = ("bikes", "faqs")

BIKES = [
    {
        "id": "bike_001",
        "name": "City Cruiser 001",
        "type": "Electric",
        "priceValue": 25.0,
        "latitude": 14.5890,
        "longitude": 120.9760,
        "description": "Perfect for city rides with electric assistance",
    },
    {
        "id": "bike_002",
        "name": "Mountain Explorer 002",
        "type": "Mountain",
        "priceValue": 30.0,
        "latitude": 14.5900,
        "longitude": 120.9770,
        "description": "Rugged mountain bike for off-road adventures",
    },
    {
        "id": "bike_003",
        "name": "Speed Demon 003",
        "type": "Road",
        "priceValue": 35.0,
        "latitude": 14.5910,
        "longitude": 120.9780,
        "description": "High-performance road bike for speed enthusiasts",
    },
    {
        "id": "bike_004",
        "name": "Comfort Rider 004",
        "type": "Hybrid",
        "priceValue": 20.0,
        "latitude": 14.5920,
        "longitude": 120.9790,
        "description": "Comfortable hybrid bike for casual rides",
    },
    {
        "id": "bike_005",
        "name": "Electric Pro 005",
        "type": "Electric",
        "priceValue": 40.0,
        "latitude": 14.5930,
        "longitude": 120.9800,
        "description": "Premium electric bike with advanced features",
    },
]

FAQS = [
    ("How do I rent a bike?", "Open the map, pick an available bike and tap Start Ride."),
    ("How is my ride charged?", "Rides are billed at the bike's hourly rate with a 15 minute minimum."),
    ("How do I pay?", "Send the amount by GCash, then submit the reference number in the Payment tab."),
    ("What if I have a problem during a ride?", "Send us a message from Help & Support and an admin will reply."),
]


def _init_firebase():
    options = {}
    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    if project_id:
        options["projectId"] = project_id

    if os.environ.get("FIREBASE_USE_EMULATOR", "").lower() == "true":
        os.environ.setdefault("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        options.setdefault("projectId", "demo-bikerental")
        firebase_admin.initialize_app(credential=None, options=options)
        return

    service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH")

    if service_account_json:
        try:
            cred = credentials.Certificate(json.loads(service_account_json))
        except json.JSONDecodeError as exc:
            print(f"Invalid FIREBASE_SERVICE_ACCOUNT JSON: {exc}", file=sys.stderr)
            sys.exit(1)
    elif service_account_path and os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
    else:
        print("Provide FIREBASE_SERVICE_ACCOUNT or FIREBASE_SERVICE_ACCOUNT_PATH.", file=sys.stderr)
        sys.exit(1)

    firebase_admin.initialize_app(cred, options=options or None)


def _clear_collection(collection_ref):
    for doc in collection_ref.stream():
        doc.reference.delete()


def clear_all(db):
    print("🧹 Clearing seeded collections...")
    for name in SEED_COLLECTIONS:
        _clear_collection(db.collection(name))
    print("✅ Clear completed")


def seed(db):
    print("🌱 Seeding Firestore...")
    now = datetime.now(timezone.utc)
    now_ms = int(now.timestamp() * 1000)

    for data in BIKES:
        bike = Bike.from_dict(data)
        bike.lastUpdated = now_ms
        db.collection("bikes").document(bike.id).set({
            **bike.to_dict(),
            "createdAt": now,
            "updatedAt": now,
        })
    print(f"  {len(BIKES)} bikes")

    for order, (question, answer) in enumerate(FAQS, start=1):
        db.collection("faqs").add({
            "question": question,
            "answer": answer,
            "order": order,
            "createdAt": now,
        })
    print(f"  {len(FAQS)} FAQs")

    db.collection("settings").document("payment").set(
        {**PaymentSettings().to_dict(), "updatedAt": now}, merge=True
    )
    print("  payment settings")

    print("✅ Seed completed successfully")


def main():
    parser = argparse.ArgumentParser(description="Seed Firestore with bikes, FAQs and payment settings")
    parser.add_argument("--confirm", action="store_true", help="required; writes to the configured project")
    parser.add_argument("--reset", action="store_true", help="clear bikes and FAQs before seeding")
    args = parser.parse_args()

    if not args.confirm:
        print("Refusing to run without --confirm.", file=sys.stderr)
        sys.exit(1)

    _init_firebase()
    db = firestore.client()

    if args.reset:
        clear_all(db)
    seed(db)


if __name__ == "__main__":
    main()
