import logging
from typing import Any, Dict, List, Optional

from ..constants import REVIEWS_COLLECTION
from ..firebase_service import FirestoreService
from .bikes import bike_repository
from .rides import ride_repository
from .users import user_repository

logger = logging.getLogger("rentals")


def calculate_average_rating(reviews: List[Dict[str, Any]]) -> float:
    """Mean of the positive numeric ratings, one decimal."""
    ratings = []
    for review in reviews:
        try:
            rating = float(review.get("rating"))
        except (TypeError, ValueError):
            continue
        if rating > 0:
            ratings.append(rating)
    if not ratings:
        return 0.0
    return round(sum(ratings) / len(ratings), 1)


def calculate_stats(bikes, users, rides, reviews) -> Dict[str, Any]:
    available_bikes = [bike for bike in bikes if bike.get("isAvailable") and not bike.get("isInUse")]
    in_use_bikes = [bike for bike in bikes if bike.get("isInUse")]
    verified_users = [user for user in users if user.get("idVerificationStatus") == "approved"]
    active_rides = [ride for ride in rides if ride.get("isActive")]

    total_reviews = len(reviews)
    average_rating = calculate_average_rating(reviews)

    # Bikes that carry their own review aggregates take precedence
    bikes_with_reviews = [
        bike for bike in bikes
        if bike.get("totalReviews") is not None and bike.get("averageRating") is not None
    ]
    if bikes_with_reviews:
        total_reviews = sum(bike.get("totalReviews") or 0 for bike in bikes_with_reviews)
        if total_reviews > 0:
            weighted_sum = sum(
                (bike.get("averageRating") or 0) * (bike.get("totalReviews") or 0)
                for bike in bikes_with_reviews
            )
            average_rating = round(weighted_sum / total_reviews, 1)

    return {
        "totalBikes": len(bikes),
        "activeBikes": len(available_bikes),
        "inUseBikes": len(in_use_bikes),
        "maintenanceBikes": len(bikes) - len(available_bikes) - len(in_use_bikes),
        "totalUsers": len(users),
        "verifiedUsers": len(verified_users),
        "activeRides": len(active_rides),
        "totalRides": len(rides),
        "totalReviews": total_reviews,
        "averageRating": average_rating,
    }


class AnalyticsRepository(FirestoreService):
    """Dashboard aggregates across bikes, users, rides and reviews."""

    COLLECTION = REVIEWS_COLLECTION
    CACHE_TTL_KEY = "reviews"

    def get_reviews(self) -> Optional[List[Dict[str, Any]]]:
        return self.query_documents(limit=None, cache_key="list")

    def get_analytics_data(self) -> Optional[Dict[str, Any]]:
        # Totals count every document, so these reads are not capped
        bikes = bike_repository.list_bikes(limit=None)
        users = user_repository.list_users(limit=None)
        rides = ride_repository.list_rides(limit=None)
        reviews = self.get_reviews()

        if bikes is None or users is None or rides is None:
            logger.error("Analytics unavailable: failed to load bikes, users or rides")
            return None
        if reviews is None:
            logger.warning("Reviews unavailable, analytics computed without them")
            reviews = []

        return {
            "stats": calculate_stats(bikes, users, rides, reviews),
            "recentRides": rides[:10],
        }


# Singleton instance
analytics_repository = AnalyticsRepository()
