import os

# Firestore collections
BIKES_COLLECTION = "bikes"
RIDES_COLLECTION = "rides"
USERS_COLLECTION = "users"
ADMINS_COLLECTION = "admins"
NOTIFICATIONS_COLLECTION = "notifications"
SUPPORT_MESSAGES_COLLECTION = "supportMessages"
SUPPORT_REPLIES_SUBCOLLECTION = "replies"
FAQS_COLLECTION = "faqs"
SETTINGS_COLLECTION = "settings"
PAYMENTS_COLLECTION = "payments"
BOOKINGS_COLLECTION = "bookings"
REVIEWS_COLLECTION = "reviews"

PAYMENT_SETTINGS_DOCUMENT = "payment"

# Firestore query directions (accepted by Query.order_by as plain strings)
ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

DEFAULT_QUERY_LIMIT = 50
# Firestore rejects write batches with more operations than this
FIRESTORE_BATCH_LIMIT = 500
MAX_QUERY_LIMIT = 200
NOTIFICATION_LIMIT = 50
DEFAULT_RIDE_HISTORY_LIMIT = 20

# Ride lifecycle
RIDE_STATUS_ACTIVE = "active"
RIDE_STATUS_COMPLETED = "completed"
RIDE_STATUS_CANCELLED = "cancelled"

# Bike lifecycle
BIKE_STATUS_AVAILABLE = "available"

DEFAULT_HOURLY_RATE = 50.0
MINIMUM_BILLABLE_MINUTES = 15

# Support messages
SUPPORT_STATUS_NEW = "new"
SUPPORT_STATUS_IN_PROGRESS = "in-progress"
SUPPORT_STATUS_RESOLVED = "resolved"
SUPPORT_STATUSES = (SUPPORT_STATUS_NEW, SUPPORT_STATUS_IN_PROGRESS, SUPPORT_STATUS_RESOLVED)

# Bookings
BOOKING_PENDING = "PENDING"
BOOKING_CONFIRMED = "CONFIRMED"
BOOKING_COMPLETED = "COMPLETED"
BOOKING_CANCELLED = "CANCELLED"
BOOKING_STATUSES = (BOOKING_PENDING, BOOKING_CONFIRMED, BOOKING_COMPLETED, BOOKING_CANCELLED)
BOOKING_BLOCKING_STATUSES = [BOOKING_PENDING, BOOKING_CONFIRMED]
PAYMENT_STATUS_UNPAID = "unpaid"
PAYMENT_STATUS_PAID = "paid"

# Payments
PAYMENT_PENDING = "PENDING"
PAYMENT_CONFIRMED = "CONFIRMED"
PAYMENT_REJECTED = "REJECTED"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_CONFIRMED, PAYMENT_REJECTED)

DEFAULT_GCASH_NUMBER = "09123456789"
DEFAULT_BUSINESS_NAME = "Bambike Cycles"

# ID verification
VERIFICATION_STATUSES = ("pending", "approved", "rejected")

# Notifications
NOTIFICATION_PRIORITIES = ("LOW", "NORMAL", "HIGH", "URGENT")
NOTIFICATION_TYPES = (
    "UNPAID_BOOKING",
    "PAYMENT_SUCCESS",
    "ADMIN_REPLY",
    "PAYMENT_APPROVAL",
    "BOOKING_APPROVAL",
    "RIDE_COMPLETE",
    "UNPAID_PAYMENT",
    "ADMIN_MESSAGE",
    "EMAIL_VERIFICATION",
    "BOOKING_CONFIRMATION",
    "BOOKING_REMINDER",
    "BOOKING_CANCELLATION",
    "GENERAL",
)

ADMIN_ROLE_NAMES = {"admin", "administrator"}

# Firebase Auth rate-limit backoff
BACKOFF_BASE_SECONDS = 1.0
BACKOFF_MAX_MULTIPLIER = 16
BACKOFF_RESET_SECONDS = 60.0
BACKOFF_RETRIES = 3

# Storage
PROFILE_PICTURE_PREFIX = "profile_pictures"
MAX_PROFILE_PICTURE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

# Google Directions
DIRECTIONS_API_URL = os.environ.get(
    "DIRECTIONS_API_URL", "https://maps.googleapis.com/maps/api/directions/json"
)
DIRECTIONS_TIMEOUT_SECONDS = 15
DIRECTIONS_MODES = {"bicycling", "walking", "driving"}
