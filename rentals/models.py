# Models are stored in Firebase Firestore, not the Django DB.
# These dataclasses describe the Firestore documents and convert them to and
# from the camelCase dicts the mobile app and the admin dashboard read.
#
# See firebase_service.py and repositories/ for Firestore operations.
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    BIKE_STATUS_AVAILABLE,
    BOOKING_PENDING,
    DEFAULT_BUSINESS_NAME,
    DEFAULT_GCASH_NUMBER,
    PAYMENT_PENDING,
    PAYMENT_STATUS_UNPAID,
    RIDE_STATUS_ACTIVE,
    SUPPORT_STATUS_NEW,
)


def _float(value, default=0.0):
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _int(value, default=0):
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _bool(value, default=False):
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    return default


def _str(value, default=""):
    if value is None:
        return default
    return str(value)


@dataclass
class BikeLocation:
    """A GPS sample along a ride."""
    latitude: float = 0.0
    longitude: float = 0.0
    timestamp: int = 0
    accuracy: float = 0.0
    speed: float = 0.0
    bearing: float = 0.0
    altitude: float = 0.0
    provider: str = "unknown"

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], default_timestamp: int = 0) -> "BikeLocation":
        data = data or {}
        return cls(
            latitude=_float(data.get("latitude")),
            longitude=_float(data.get("longitude")),
            timestamp=_int(data.get("timestamp"), default_timestamp) or default_timestamp,
            accuracy=_float(data.get("accuracy")),
            speed=_float(data.get("speed", data.get("speedKmh"))),
            bearing=_float(data.get("bearing")),
            altitude=_float(data.get("altitude")),
            provider=_str(data.get("provider"), "unknown"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Bike:
    id: str = ""
    name: str = ""
    type: str = ""
    price: str = ""
    priceValue: float = 0.0
    imageUrl: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    rating: float = 0.0
    batteryLevel: int = 100
    isAvailable: bool = True
    isInUse: bool = False
    isLocked: bool = True
    currentRider: str = ""
    currentRideId: str = ""
    stationId: str = ""
    description: str = ""
    status: str = BIKE_STATUS_AVAILABLE
    lastUpdated: int = 0

    @staticmethod
    def display_price(price_value: float) -> str:
        if price_value == int(price_value):
            return f"₱{int(price_value)}/hr"
        return f"₱{price_value:.2f}/hr"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Bike":
        price_value = _float(data.get("priceValue", data.get("price")))
        return cls(
            id=_str(data.get("id")),
            name=_str(data.get("name")).strip(),
            type=_str(data.get("type")).strip(),
            price=cls.display_price(price_value),
            priceValue=price_value,
            imageUrl=_str(data.get("imageUrl")),
            latitude=_float(data.get("latitude")),
            longitude=_float(data.get("longitude")),
            rating=_float(data.get("rating")),
            batteryLevel=max(0, min(100, _int(data.get("batteryLevel"), 100))),
            isAvailable=_bool(data.get("isAvailable"), True),
            isInUse=_bool(data.get("isInUse"), False),
            isLocked=_bool(data.get("isLocked"), True),
            currentRider=_str(data.get("currentRider")),
            currentRideId=_str(data.get("currentRideId")),
            stationId=_str(data.get("stationId")),
            description=_str(data.get("description")),
            status=_str(data.get("status")).strip() or BIKE_STATUS_AVAILABLE,
            lastUpdated=_int(data.get("lastUpdated")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BikeRide:
    id: str = ""
    bikeId: str = ""
    userId: str = ""
    startTime: int = 0
    endTime: int = 0
    startLocation: Dict[str, Any] = field(default_factory=dict)
    endLocation: Dict[str, Any] = field(default_factory=dict)
    lastLocation: Dict[str, Any] = field(default_factory=dict)
    cost: float = 0.0
    distanceTraveled: float = 0.0
    totalDistance: float = 0.0
    averageSpeed: float = 0.0
    maxSpeed: float = 0.0
    status: str = RIDE_STATUS_ACTIVE
    isActive: bool = True
    path: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PaymentSettings:
    gcashNumber: str = DEFAULT_GCASH_NUMBER
    businessName: str = DEFAULT_BUSINESS_NAME
    qrCodeUrl: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PaymentSettings":
        data = data or {}
        return cls(
            gcashNumber=_str(data.get("gcashNumber")) or DEFAULT_GCASH_NUMBER,
            businessName=_str(data.get("businessName")) or DEFAULT_BUSINESS_NAME,
            qrCodeUrl=_str(data.get("qrCodeUrl")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NotificationRequest:
    userId: str
    type: str
    title: str
    message: str
    actionText: str = ""
    actionData: Dict[str, Any] = field(default_factory=dict)
    priority: str = "NORMAL"

    def to_document(self, timestamp) -> Dict[str, Any]:
        return {
            "userId": self.userId,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "actionText": self.actionText,
            "actionData": self.actionData,
            "priority": self.priority,
            "timestamp": timestamp,
            "read": False,
            "actionable": bool(self.actionText.strip()),
        }


@dataclass
class SupportMessage:
    userId: str
    subject: str
    message: str
    userName: str = ""
    userEmail: str = ""
    userPhone: str = ""
    status: str = SUPPORT_STATUS_NEW
    response: Optional[str] = None
    respondedAt: Any = None

    def to_document(self, created_at) -> Dict[str, Any]:
        data = asdict(self)
        data["dateCreated"] = created_at
        return data


@dataclass
class SupportReply:
    text: str
    sender: str
    userId: str
    imageUrl: Optional[str] = None

    def to_document(self, created_at) -> Dict[str, Any]:
        data = asdict(self)
        data["createdAt"] = created_at
        return data


@dataclass
class Booking:
    bikeId: str
    userId: str
    startTime: Any
    endTime: Any
    userName: str = ""
    bikeName: str = ""
    bikeType: str = ""
    bikeImageUrl: str = ""
    location: str = ""
    totalPrice: float = 0.0
    status: str = BOOKING_PENDING
    paymentStatus: str = PAYMENT_STATUS_UNPAID
    isHourly: bool = True
    notes: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any], start_time, end_time) -> "Booking":
        return cls(
            bikeId=_str(data.get("bikeId")),
            userId=_str(data.get("userId")),
            startTime=start_time,
            endTime=end_time,
            userName=_str(data.get("userName")),
            bikeName=_str(data.get("bikeName")),
            bikeType=_str(data.get("bikeType")),
            bikeImageUrl=_str(data.get("bikeImageUrl")),
            location=_str(data.get("location")),
            totalPrice=_float(data.get("totalPrice")),
            status=_str(data.get("status")) or BOOKING_PENDING,
            paymentStatus=_str(data.get("paymentStatus")) or PAYMENT_STATUS_UNPAID,
            isHourly=_bool(data.get("isHourly"), True),
            notes=_str(data.get("notes")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Payment:
    userId: str
    mobileNumber: str
    referenceNumber: str
    amount: float
    screenshotUrl: str = ""
    status: str = PAYMENT_PENDING
    bikeType: str = ""
    duration: str = ""
    notes: str = ""
    processedAt: Any = None
    processedBy: Optional[str] = None

    @classmethod
    def from_dict(cls, user_id: str, data: Dict[str, Any]) -> "Payment":
        return cls(
            userId=user_id,
            mobileNumber=_str(data.get("mobileNumber")).strip(),
            referenceNumber=_str(data.get("referenceNumber")).strip(),
            amount=_float(data.get("amount")),
            screenshotUrl=_str(data.get("screenshotUrl")),
            bikeType=_str(data.get("bikeType")),
            duration=_str(data.get("duration")),
            notes=_str(data.get("notes")),
        )

    def to_document(self, created_at) -> Dict[str, Any]:
        data = asdict(self)
        data["createdAt"] = created_at
        return data
