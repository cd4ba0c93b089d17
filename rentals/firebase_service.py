"""
Firebase service for Django - Firebase Admin bootstrap and the base class the
Firestore repositories build on.

Firestore Collections:
- bikes/{bikeId}: Fleet, location and availability
- rides/{rideId}: Ride records with GPS path and metrics
- users/{uid}: Profiles, roles, verification status, ride history
- notifications, supportMessages, faqs, settings, payments, bookings
"""
import copy
import json
import logging
import os
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings

from .constants import DEFAULT_QUERY_LIMIT, FIRESTORE_BATCH_LIMIT
from .dedup import request_deduplicator

logger = logging.getLogger("rentals")

# Firebase Admin initialization
_firebase_app = None
_firestore_client = None
_firebase_init_attempted = False


def get_firebase_app():
    """Get or initialize Firebase Admin app"""
    global _firebase_app, _firebase_init_attempted

    if _firebase_app is not None:
        return _firebase_app

    if _firebase_init_attempted:
        # Already tried and failed
        return None

    _firebase_init_attempted = True

    try:
        import firebase_admin
        from firebase_admin import credentials
    except ImportError:
        logger.error("firebase-admin package not installed")
        return None

    use_emulator = os.environ.get("FIREBASE_USE_EMULATOR", "false").lower() == "true"
    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    storage_bucket = os.environ.get("FIREBASE_STORAGE_BUCKET")

    options = {}
    if project_id:
        options["projectId"] = project_id
    if storage_bucket:
        options["storageBucket"] = storage_bucket

    logger.info(f"Firebase init: use_emulator={use_emulator}, project_id={project_id}")

    if use_emulator:
        # Emulator mode - the environment variable must be set before initializing
        firestore_host = os.environ.get("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        os.environ["FIRESTORE_EMULATOR_HOST"] = firestore_host
        options.setdefault("projectId", "demo-bikerental")

        try:
            _firebase_app = firebase_admin.initialize_app(credential=None, options=options)
            logger.info(f"Firebase Admin initialized with EMULATOR (Firestore: {firestore_host})")
        except ValueError as e:
            # Already initialized
            try:
                _firebase_app = firebase_admin.get_app()
                logger.info("Firebase Admin already initialized")
            except ValueError:
                logger.error(f"Firebase init failed: {e}")
                return None
        except Exception as e:
            logger.error(f"Firebase emulator init failed: {e}")
            return None
    else:
        # Production mode - need credentials
        service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
        service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH")

        cred = None
        if service_account_json:
            try:
                cred = credentials.Certificate(json.loads(service_account_json))
                logger.info("Using FIREBASE_SERVICE_ACCOUNT env var")
            except (json.JSONDecodeError, ValueError) as e:
                logger.error(f"Invalid FIREBASE_SERVICE_ACCOUNT JSON: {e}")
        elif service_account_path and os.path.exists(service_account_path):
            cred = credentials.Certificate(service_account_path)
            logger.info(f"Using service account from {service_account_path}")

        if cred:
            try:
                _firebase_app = firebase_admin.initialize_app(cred, options=options or None)
                logger.info("Firebase Admin initialized (production)")
            except ValueError:
                try:
                    _firebase_app = firebase_admin.get_app()
                except ValueError:
                    pass
        else:
            logger.warning("Firebase credentials not found - Firestore operations will fail")
            return None

    return _firebase_app


def get_firestore():
    """Get Firestore client"""
    global _firestore_client

    if _firestore_client is not None:
        return _firestore_client

    app = get_firebase_app()
    if app is None:
        return None

    try:
        from firebase_admin import firestore
        _firestore_client = firestore.client(app)
        return _firestore_client
    except Exception as e:
        logger.error(f"Failed to get Firestore client: {e}")
        return None


def snapshot_to_dict(doc) -> Optional[Dict[str, Any]]:
    """Document snapshot -> dict with the document id injected."""
    data = doc.to_dict()
    if data is None:
        return None
    data["id"] = doc.id
    return data


class FirestoreService:
    """
    Base class for Firestore repositories.

    Reads given a cache key are served from the request deduplicator while
    fresh (cache-then-network); writes drop the collection's cached reads.
    """

    COLLECTION = ""
    # Key into settings.FIRESTORE_CACHE_TTLS
    CACHE_TTL_KEY = None

    @property
    def db(self):
        return get_firestore()

    def is_available(self) -> bool:
        """Check if Firestore is available"""
        return self.db is not None

    @property
    def collection(self):
        return self.db.collection(self.COLLECTION)

    def cache_ttl(self, key: Optional[str] = None) -> float:
        ttls = getattr(settings, "FIRESTORE_CACHE_TTLS", {})
        return ttls.get(key or self.CACHE_TTL_KEY, 0)

    def cached(self, cache_key: str, fetch: Callable[[], Any], ttl: Optional[float] = None):
        """Run fetch through the shared cache; returns a private copy."""
        if ttl is None:
            ttl = self.cache_ttl()
        if not ttl:
            return fetch()
        result = request_deduplicator.deduplicate(f"{self.COLLECTION}:{cache_key}", fetch, ttl)
        return copy.deepcopy(result)

    def invalidate_cache(self, collection: Optional[str] = None) -> None:
        request_deduplicator.invalidate_prefix(f"{collection or self.COLLECTION}:")

    def get_document(self, doc_id: str, cache_key: Optional[str] = None, ttl: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """Fetch one document from this collection. None if missing or on error."""
        if not self.db:
            logger.warning("Firestore not available")
            return None

        def fetch():
            doc = self.collection.document(doc_id).get()
            return snapshot_to_dict(doc) if doc.exists else None

        try:
            if cache_key:
                return self.cached(cache_key, fetch, ttl)
            return fetch()
        except Exception as e:
            logger.error(f"Error getting {self.COLLECTION}/{doc_id}: {e}")
            return None

    def query_documents(
        self,
        build_query: Optional[Callable[[Any], Any]] = None,
        limit: Optional[int] = DEFAULT_QUERY_LIMIT,
        cache_key: Optional[str] = None,
        ttl: Optional[float] = None,
        collection=None,
    ) -> Optional[List[Dict[str, Any]]]:
        """
        Run a query against this collection (or the given collection
        reference) and return the documents as dicts.

        Documents that fail to convert are skipped. Returns None on error so
        callers can tell "no documents" from "Firestore failed".
        """
        if not self.db:
            logger.warning("Firestore not available")
            return None

        def fetch():
            query = collection if collection is not None else self.collection
            if build_query is not None:
                query = build_query(query)
            if limit:
                query = query.limit(limit)
            items = []
            for doc in query.stream():
                try:
                    item = snapshot_to_dict(doc)
                except Exception as e:
                    logger.error(f"Error converting document {doc.id} in {self.COLLECTION}: {e}")
                    continue
                if item is not None:
                    items.append(item)
            return items

        try:
            if cache_key:
                return self.cached(cache_key, fetch, ttl)
            return fetch()
        except Exception as e:
            logger.error(f"Error querying {self.COLLECTION}: {e}")
            return None

    def update_document(self, doc_id: str, updates: Dict[str, Any]) -> bool:
        if not self.db:
            return False

        try:
            self.collection.document(doc_id).update(updates)
            self.invalidate_cache()
            return True
        except Exception as e:
            logger.error(f"Error updating {self.COLLECTION}/{doc_id}: {e}")
            return False

    def delete_document(self, doc_id: str) -> bool:
        if not self.db:
            return False

        try:
            self.collection.document(doc_id).delete()
            self.invalidate_cache()
            return True
        except Exception as e:
            logger.error(f"Error deleting {self.COLLECTION}/{doc_id}: {e}")
            return False

    def write_in_batches(self, docs: List[Any], write: Callable[[Any, Any], None]) -> int:
        """
        Call write(batch, doc) for every doc, committing a new batch every
        FIRESTORE_BATCH_LIMIT writes. Returns the number of docs written.
        """
        for start in range(0, len(docs), FIRESTORE_BATCH_LIMIT):
            batch = self.db.batch()
            for doc in docs[start:start + FIRESTORE_BATCH_LIMIT]:
                write(batch, doc)
            batch.commit()
        return len(docs)
