from .health import health
from .bikes import bikes, bike_types, bike_detail, bike_location, bike_availability
from .rides import (
    ride_start,
    ride_location,
    ride_end,
    ride_cancel,
    ride_detail,
    ride_active,
    ride_history,
    ride_stats,
    ride_route,
    admin_rides,
)
from .users import users, user_me, user_profile_picture, user_role, user_verification
from .admin_users import delete_user, update_user_block_status
from .notifications import (
    notifications,
    unread_count,
    mark_read,
    mark_all_read,
    notification_detail,
    clear_notifications,
)
from .support import (
    support_messages,
    admin_support_messages,
    support_message_detail,
    support_message_status,
    support_message_respond,
    support_message_replies,
    faqs,
    faq_detail,
)
from .payments import payment_settings, payments, payment_status
from .bookings import bookings, booking_availability, booking_detail, booking_revenue
from .analytics import analytics

__all__ = [
    "health",
    "bikes",
    "bike_types",
    "bike_detail",
    "bike_location",
    "bike_availability",
    "ride_start",
    "ride_location",
    "ride_end",
    "ride_cancel",
    "ride_detail",
    "ride_active",
    "ride_history",
    "ride_stats",
    "ride_route",
    "admin_rides",
    "users",
    "user_me",
    "user_profile_picture",
    "user_role",
    "user_verification",
    "delete_user",
    "update_user_block_status",
    "notifications",
    "unread_count",
    "mark_read",
    "mark_all_read",
    "notification_detail",
    "clear_notifications",
    "support_messages",
    "admin_support_messages",
    "support_message_detail",
    "support_message_status",
    "support_message_respond",
    "support_message_replies",
    "faqs",
    "faq_detail",
    "payment_settings",
    "payments",
    "payment_status",
    "bookings",
    "booking_availability",
    "booking_detail",
    "booking_revenue",
    "analytics",
]
