"""
Push notifications for Android (FCM via Firebase Admin SDK)
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger("rentals")


@dataclass
class PushResult:
    """Result of a push notification attempt"""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class FCMService:
    """
    Firebase Cloud Messaging service.
    Uses Firebase Admin SDK for sending messages.
    """

    def __init__(self):
        self._messaging = None

    def _get_messaging(self):
        """Get Firebase messaging module (lazy initialization)"""
        if self._messaging is not None:
            return self._messaging

        from firebase_admin import messaging
        from .firebase_service import get_firebase_app

        if get_firebase_app() is not None:
            self._messaging = messaging
            logger.info("[FCM] Firebase messaging initialized")
        else:
            logger.warning("[FCM] Firebase app not initialized")
        return self._messaging

    def is_configured(self) -> bool:
        return self._get_messaging() is not None

    async def send_notification(
        self,
        device_token: str,
        title: str,
        body: str,
        data: Dict[str, Any],
        high_priority: bool = False,
    ) -> PushResult:
        """
        Send a notification message to a device.

        Args:
            device_token: The FCM registration token
            title: Notification title
            body: Notification body
            data: Data payload; values are sent as strings

        Returns:
            PushResult with success status and details
        """
        messaging = self._get_messaging()
        if messaging is None:
            return PushResult(success=False, error="FCM not configured", error_code="not_configured")

        string_data = {k: str(v) for k, v in data.items() if v is not None}

        try:
            message = messaging.Message(
                token=device_token,
                notification=messaging.Notification(title=title, body=body),
                data=string_data,
                android=messaging.AndroidConfig(priority="high" if high_priority else "normal"),
            )
            response = messaging.send(message)
            logger.info(f"[FCM] Message sent successfully: {response}")
            return PushResult(success=True, message_id=response)
        except messaging.UnregisteredError:
            logger.warning(f"[FCM] Token unregistered: {device_token[:20]}...")
            return PushResult(success=False, error="Token unregistered", error_code="UNREGISTERED")
        except messaging.SenderIdMismatchError:
            logger.error("[FCM] Sender ID mismatch")
            return PushResult(success=False, error="Sender ID mismatch", error_code="SENDER_ID_MISMATCH")
        except Exception as e:
            logger.error(f"[FCM] Send error: {e}")
            return PushResult(success=False, error=str(e), error_code="exception")


class PushNotificationService:
    def __init__(self):
        self.fcm = FCMService()

    async def send_notification_push(self, fcm_token: Optional[str], notification: Dict[str, Any]) -> PushResult:
        """Push an in-app notification document to the user's device."""
        if not fcm_token:
            return PushResult(success=False, error="Missing fcmToken", error_code="missing_token")

        data = {
            "notificationId": notification.get("id"),
            "type": notification.get("type"),
            "actionText": notification.get("actionText"),
        }
        for key, value in (notification.get("actionData") or {}).items():
            data.setdefault(key, value)

        return await self.fcm.send_notification(
            fcm_token,
            notification.get("title", ""),
            notification.get("message", ""),
            data,
            high_priority=notification.get("priority") in ("HIGH", "URGENT"),
        )


# Singleton instance
push_service = PushNotificationService()
