import logging
from typing import Any, Dict, List, Optional

from django.utils import timezone

from ..constants import (
    BIKES_COLLECTION,
    DEFAULT_RIDE_HISTORY_LIMIT,
    DESCENDING,
    MAX_QUERY_LIMIT,
    RIDE_STATUS_ACTIVE,
    RIDE_STATUS_CANCELLED,
    RIDE_STATUS_COMPLETED,
    RIDES_COLLECTION,
)
from ..firebase_service import FirestoreService
from ..models import BikeRide
from ..ride_metrics import (
    calculate_ride_cost,
    parse_hourly_rate,
    process_ride_data,
    speeds_from_path,
    total_distance_from_path,
)
from ..utils import now_ms, to_millis
from .users import user_repository

logger = logging.getLogger("rentals")


class RideRepository(FirestoreService):
    """
    Ride records on rides/{rideId}.

    Writes that touch both the ride and its bike go through one batch so the
    bike never shows as in use without an active ride (or the reverse).
    """

    COLLECTION = RIDES_COLLECTION
    CACHE_TTL_KEY = "rides"

    def _bike_ref(self, bike_id: str):
        return self.db.collection(BIKES_COLLECTION).document(bike_id)

    def _invalidate(self):
        self.invalidate_cache()
        self.invalidate_cache(BIKES_COLLECTION)

    # =========================================================================
    # Ride lifecycle
    # =========================================================================

    def create_ride(self, user_id: str, bike: Dict[str, Any], start_location: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Create an active ride and mark the bike as in use.

        Document structure at rides/{rideId}:
        {
            "id": "auto id",
            "bikeId": "bike id",
            "userId": "uid",
            "startTime": 1700000000000,
            "endTime": 0,
            "startLocation": {latitude, longitude, timestamp, ...},
            "path": [startLocation],
            "distanceTraveled": 0,
            "status": "active",
            "isActive": true,
            ...
        }
        """
        if not self.db:
            logger.warning("Firestore not available")
            return None

        try:
            start_time = start_location.get("timestamp") or now_ms()
            doc_ref = self.collection.document()
            ride = BikeRide(
                id=doc_ref.id,
                bikeId=bike["id"],
                userId=user_id,
                startTime=start_time,
                startLocation=start_location,
                lastLocation=start_location,
                path=[start_location],
            )
            ride_data = ride.to_dict()
            ride_data["createdAt"] = timezone.now()
            ride_data["updatedAt"] = ride_data["createdAt"]

            batch = self.db.batch()
            batch.set(doc_ref, ride_data)
            batch.update(self._bike_ref(bike["id"]), {
                "isAvailable": False,
                "isInUse": True,
                "isLocked": False,
                "currentRider": user_id,
                "currentRideId": doc_ref.id,
                "lastRideStart": start_time,
                "updatedAt": ride_data["createdAt"],
            })
            batch.commit()
            self._invalidate()

            logger.info(f"Started ride {doc_ref.id}: user={user_id}, bike={bike['id']}")
        except Exception as e:
            logger.error(f"Error creating ride: {e}")
            return None

        if not user_repository.add_ride_to_history(user_id, ride_data["id"]):
            logger.warning(f"Ride {ride_data['id']} not added to history of {user_id}")
        return ride_data

    def record_location(self, ride: Dict[str, Any], location: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Append a GPS sample, recompute metrics and move the bike."""
        if not self.db:
            return None

        try:
            path = list(ride.get("path") or [])
            path.append(location)
            max_speed, average_speed = speeds_from_path(path)
            distance = total_distance_from_path(path)
            updated_at = timezone.now()

            updates = {
                "path": path,
                "lastLocation": location,
                "distanceTraveled": distance,
                "totalDistance": distance,
                "averageSpeed": average_speed,
                "maxSpeed": max_speed,
                "updatedAt": updated_at,
            }

            batch = self.db.batch()
            batch.update(self.collection.document(ride["id"]), updates)
            batch.update(self._bike_ref(ride["bikeId"]), {
                "latitude": location["latitude"],
                "longitude": location["longitude"],
                "lastUpdated": location.get("timestamp") or now_ms(),
            })
            batch.commit()
            self._invalidate()

            return {**ride, **updates}
        except Exception as e:
            logger.error(f"Error recording location for ride {ride.get('id')}: {e}")
            return None

    def end_ride(
        self,
        ride: Dict[str, Any],
        bike: Optional[Dict[str, Any]],
        end_location: Dict[str, Any],
        final_distance: Optional[float] = None,
        final_cost: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        """
        Complete a ride and release its bike.

        Distance and speeds come from the GPS path unless the client sent a
        final distance; cost is billed from the bike's hourly rate unless the
        client sent a final cost.
        """
        if not self.db:
            return None

        try:
            end_time = end_location.get("timestamp") or now_ms()
            start_time = to_millis(ride.get("startTime")) or end_time
            # A skewed client clock must not produce a negative duration
            end_time = max(end_time, start_time)
            path = list(ride.get("path") or [])
            path.append(end_location)

            max_speed, average_speed = speeds_from_path(path)
            distance = final_distance if final_distance is not None else total_distance_from_path(path)
            if final_cost is None:
                final_cost = calculate_ride_cost(start_time, end_time, parse_hourly_rate(bike))

            updated_at = timezone.now()
            updates = {
                "endTime": end_time,
                "endLocation": end_location,
                "lastLocation": end_location,
                "path": path,
                "pathPointCount": len(path),
                "duration": end_time - start_time,
                "distanceTraveled": distance,
                "totalDistance": distance,
                "maxSpeed": max_speed,
                "averageSpeed": average_speed,
                "cost": final_cost,
                "status": RIDE_STATUS_COMPLETED,
                "isActive": False,
                "updatedAt": updated_at,
            }

            batch = self.db.batch()
            batch.update(self.collection.document(ride["id"]), updates)
            if bike is not None:
                batch.update(self._bike_ref(bike["id"]), self._release_bike_fields(end_location, end_time))
            batch.commit()
            self._invalidate()

            logger.info(f"Ended ride {ride['id']}: distance={distance:.0f}m, cost={final_cost}")
            return {**ride, **updates}
        except Exception as e:
            logger.error(f"Error ending ride {ride.get('id')}: {e}")
            return None

    def cancel_ride(self, ride: Dict[str, Any], bike: Optional[Dict[str, Any]]) -> bool:
        if not self.db:
            return False

        try:
            end_time = now_ms()
            batch = self.db.batch()
            batch.update(self.collection.document(ride["id"]), {
                "status": RIDE_STATUS_CANCELLED,
                "isActive": False,
                "endTime": end_time,
                "cost": 0,
                "updatedAt": timezone.now(),
            })
            if bike is not None:
                batch.update(
                    self._bike_ref(bike["id"]),
                    self._release_bike_fields(ride.get("lastLocation") or {}, end_time),
                )
            batch.commit()
            self._invalidate()
            logger.info(f"Cancelled ride {ride['id']}")
            return True
        except Exception as e:
            logger.error(f"Error cancelling ride {ride.get('id')}: {e}")
            return False

    @staticmethod
    def _release_bike_fields(location: Dict[str, Any], end_time: int) -> Dict[str, Any]:
        fields = {
            "isAvailable": True,
            "isInUse": False,
            "isLocked": True,
            "currentRider": "",
            "currentRideId": "",
            "lastRideEnd": end_time,
            "updatedAt": timezone.now(),
        }
        if location.get("latitude") and location.get("longitude"):
            fields["latitude"] = location["latitude"]
            fields["longitude"] = location["longitude"]
            fields["lastUpdated"] = end_time
        return fields

    # =========================================================================
    # Queries
    # =========================================================================

    def get_ride(self, ride_id: str) -> Optional[Dict[str, Any]]:
        return self.get_document(ride_id)

    def get_active_ride(self, user_id: str) -> Optional[Dict[str, Any]]:
        rides = self.query_documents(
            lambda query: query.where("userId", "==", user_id).where("status", "==", RIDE_STATUS_ACTIVE),
            limit=1,
        )
        if not rides:
            return None
        return rides[0]

    def get_user_ride_history(self, user_id: str, limit: int = DEFAULT_RIDE_HISTORY_LIMIT) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(
            lambda query: query.where("userId", "==", user_id).order_by("startTime", direction=DESCENDING),
            limit=limit,
        )

    def get_user_ride_stats(self, user_id: str) -> Optional[Dict[str, Any]]:
        rides = self.query_documents(
            lambda query: query.where("userId", "==", user_id).where("status", "==", RIDE_STATUS_COMPLETED),
            limit=None,
        )
        if rides is None:
            return None

        processed = [process_ride_data(ride) for ride in rides]
        total_rides = len(processed)
        return {
            "totalRides": total_rides,
            "totalDistance": sum(ride["totalDistance"] for ride in processed),
            "totalCost": round(sum(float(ride.get("cost") or 0) for ride in processed), 2),
            "totalDuration": sum(max(0, ride["duration"]) for ride in processed),
            "averageSpeed": (
                sum(ride["averageSpeed"] for ride in processed) / total_rides if total_rides else 0.0
            ),
        }

    def list_rides(self, active_only: bool = False, limit: Optional[int] = MAX_QUERY_LIMIT) -> Optional[List[Dict[str, Any]]]:
        def build(query):
            if active_only:
                return query.where("isActive", "==", True)
            return query.order_by("startTime", direction=DESCENDING)

        return self.query_documents(build, limit=limit, cache_key=f"list:active={int(active_only)}:limit={limit}")


# Singleton instance
ride_repository = RideRepository()
