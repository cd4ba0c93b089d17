import logging
import uuid
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import BIKES_COLLECTION, MAX_QUERY_LIMIT
from ..firebase_service import FirestoreService
from ..models import Bike
from ..utils import now_ms

logger = logging.getLogger("rentals")

# Fields an admin may change through a bike update
EDITABLE_FIELDS = {
    "name", "type", "priceValue", "imageUrl", "description", "stationId",
    "batteryLevel", "isLocked", "rating", "status",
}


class BikeRepository(FirestoreService):
    """Bike fleet operations on bikes/{bikeId}."""

    COLLECTION = BIKES_COLLECTION
    CACHE_TTL_KEY = "bikes"

    def list_bikes(
        self,
        available_only: bool = False,
        bike_type: Optional[str] = None,
        limit: Optional[int] = MAX_QUERY_LIMIT,
    ) -> Optional[List[Dict[str, Any]]]:
        """limit=None reads the whole fleet."""

        def build(query):
            if available_only:
                query = query.where("isAvailable", "==", True)
            if bike_type:
                query = query.where("type", "==", bike_type)
            return query

        cache_key = f"list:available={int(available_only)}:type={bike_type or ''}:limit={limit}"
        return self.query_documents(build, limit=limit, cache_key=cache_key)

    def get_bike(self, bike_id: str, fresh: bool = False) -> Optional[Dict[str, Any]]:
        if fresh:
            return self.get_document(bike_id)
        return self.get_document(bike_id, cache_key=f"details:{bike_id}", ttl=self.cache_ttl("bike_details"))

    def list_bike_types(self) -> Optional[List[str]]:
        bikes = self.list_bikes(limit=None)
        if bikes is None:
            return None
        return sorted({bike.get("type") for bike in bikes if bike.get("type")})

    def create_bike(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not self.db:
            logger.warning("Firestore not available")
            return None

        bike = Bike.from_dict(data)
        bike.id = str(uuid.uuid4())
        bike.isAvailable = True
        bike.isInUse = False
        bike.lastUpdated = now_ms()

        bike_data = bike.to_dict()
        bike_data["createdAt"] = timezone.now()
        bike_data["updatedAt"] = bike_data["createdAt"]

        try:
            self.collection.document(bike.id).set(bike_data)
            self.invalidate_cache()
            logger.info(f"Created bike {bike.id} ({bike.name})")
            return bike_data
        except Exception as e:
            logger.error(f"Error creating bike: {e}")
            return None

    def update_bike(self, bike_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        updates = {key: value for key, value in data.items() if key in EDITABLE_FIELDS}
        if "priceValue" in updates:
            price_value = Bike.from_dict({"priceValue": updates["priceValue"]}).priceValue
            updates["priceValue"] = price_value
            updates["price"] = Bike.display_price(price_value)
        if not updates:
            return self.get_bike(bike_id, fresh=True)

        updates["updatedAt"] = timezone.now()
        if not self.update_document(bike_id, updates):
            return None
        return self.get_bike(bike_id, fresh=True)

    def update_bike_location(self, bike_id: str, latitude: float, longitude: float) -> bool:
        return self.update_document(bike_id, {
            "latitude": latitude,
            "longitude": longitude,
            "lastUpdated": now_ms(),
        })

    def update_bike_availability(self, bike_id: str, is_available: bool) -> bool:
        return self.update_document(bike_id, {
            "isAvailable": is_available,
            "updatedAt": timezone.now(),
        })

    def update_bike_status(self, bike_id: str, status: str) -> bool:
        return self.update_document(bike_id, {"status": status, "updatedAt": timezone.now()})

    def delete_bike(self, bike_id: str) -> bool:
        return self.delete_document(bike_id)


# Singleton instance
bike_repository = BikeRepository()
