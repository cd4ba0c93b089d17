from .analytics import analytics_repository
from .bikes import bike_repository
from .bookings import booking_repository
from .notifications import notification_repository
from .payments import payment_repository, payment_settings_repository
from .rides import ride_repository
from .support import faq_repository, support_repository
from .users import user_repository

__all__ = [
    "analytics_repository",
    "bike_repository",
    "booking_repository",
    "notification_repository",
    "payment_repository",
    "payment_settings_repository",
    "ride_repository",
    "faq_repository",
    "support_repository",
    "user_repository",
]
