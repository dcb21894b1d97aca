"""
Push notification fan-out for request lifecycle events.

Mutations return the notifications they imply; the API layer hands them to
``notification_dispatcher`` after the state change is committed. Delivery is
best effort: failures are logged and never reach the caller.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import settings
from app.domains.users.repository import AppUserRepository

logger = logging.getLogger(__name__)

MIN_TOKEN_LENGTH = 10

# Gateway error codes meaning the device token will never work again
STALE_TOKEN_ERRORS = {"UNREGISTERED", "INVALID_ARGUMENT", "NOT_FOUND"}


@dataclass(frozen=True)
class Notification:
    """One push a committed transition asks for."""
    user_id: str
    request_id: str
    status: str
    is_refiller: bool = False


@dataclass(frozen=True)
class NotificationDetails:
    type: str
    title: str
    body: str


@dataclass
class DeliveryResult:
    success: bool
    message: str
    user_id: Optional[str] = None
    message_id: Optional[str] = None
    should_remove_token: bool = False


NOTIFICATION_TYPES: Dict[str, NotificationDetails] = {
    "Pending": NotificationDetails("notify_new_request", "New Request", "New Request Assigned"),
    "OrderReady": NotificationDetails("notify_new_order", "New Order", "New Order Assigned"),
    "Assigned": NotificationDetails("notify_request_assigned", "Request Assigned", "Request Assigned to Refiller"),
    "Declined": NotificationDetails("notify_request_declined", "Request Declined", "Request Declined by Refiller"),
    "PickedUp": NotificationDetails("notify_request_pickedup", "Request PickedUp", "Request Pickedup by Refiller"),
    "Ongoing": NotificationDetails("notify_request_ongoing", "Request Ongoing", "Request Ongoing by Refiller"),
    "Refilled": NotificationDetails("notify_request_refilled", "Refilled by Refiller", "Request Refilled by Refiller"),
    "NotRefilled": NotificationDetails(
        "notify_request_notRefilled", "NotRefilled by Refiller", "Request NotRefilled by Refiller"
    ),
    "Submitted": NotificationDetails("notify_request_submitted", "Submitted by Kitchen", "Request Submitted by Kitchen"),
    "NotSubmitted": NotificationDetails(
        "notify_request_notSubmitted", "NotSubmitted by Kitchen", "Request NotSubmitted by Kitchen"
    ),
    "Cancelled": NotificationDetails("notify_order_canceled", "Order Canceled", "Order Canceled by Kitchen"),
    "Completed": NotificationDetails("notify_order_completed", "Order Completed", "Order Completed by Kitchen"),
}

REFILLER_COMPLETED = NotificationDetails(
    "notify_request_completed", "Request Completed", "Request Completed by Refiller"
)


def notification_details(status: str, is_refiller: bool = False) -> Optional[NotificationDetails]:
    """Title, body and type for a status, or None for statuses nobody is told about."""
    if status == "Completed" and is_refiller:
        return REFILLER_COMPLETED
    return NOTIFICATION_TYPES.get(status)


def is_plausible_token(token: Optional[str]) -> bool:
    return isinstance(token, str) and len(token.strip()) >= MIN_TOKEN_LENGTH


class PushGateway:
    """
    HTTP client for the push gateway.
    Posts FCM-shaped messages to ``PUSH_GATEWAY_URL``.
    """

    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url if url is not None else settings.PUSH_GATEWAY_URL
        self.api_key = api_key if api_key is not None else settings.PUSH_GATEWAY_KEY
        self.timeout = timeout if timeout is not None else settings.PUSH_TIMEOUT_SECONDS
        self.transport = transport

    async def send(self, token: str, details: NotificationDetails, data: Dict[str, Any]) -> DeliveryResult:
        """
        Deliver one push message.

        Args:
            token: Device push token
            details: Title, body and type of the message
            data: Extra payload; values are sent as strings

        Returns:
            DeliveryResult describing the gateway's answer
        """
        if not self.url:
            return DeliveryResult(False, "Push gateway not configured")

        payload = {
            "message": {
                "token": token,
                "notification": {"title": details.title, "body": details.body},
                "data": {key: str(value) for key, value in {"type": details.type, **data}.items()},
            }
        }
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(self.url, json=payload, headers=headers)
            except httpx.HTTPError as e:
                return DeliveryResult(False, f"Push gateway unreachable: {e}")

        if response.is_success:
            body = _json_or_empty(response)
            return DeliveryResult(True, "Notification sent successfully", message_id=body.get("name"))

        error_code = _gateway_error_code(response)
        return DeliveryResult(
            False,
            f"Push gateway error {response.status_code}: {error_code or response.text[:200]}",
            should_remove_token=error_code in STALE_TOKEN_ERRORS,
        )


def _json_or_empty(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _gateway_error_code(response: httpx.Response) -> Optional[str]:
    error = _json_or_empty(response).get("error")
    if not isinstance(error, dict):
        return None
    for detail in error.get("details") or []:
        if isinstance(detail, dict) and detail.get("errorCode"):
            return detail["errorCode"]
    return error.get("status")


class NotificationDispatcher:
    """
    Resolves recipients in the app user directory and delivers pushes.
    """

    def __init__(self, user_repo: Optional[AppUserRepository] = None, gateway: Optional[PushGateway] = None):
        self.user_repo = user_repo or AppUserRepository()
        self.gateway = gateway or PushGateway()

    async def dispatch(self, notifications: List[Notification]) -> List[DeliveryResult]:
        """
        Deliver every notification, logging and swallowing individual failures.

        Args:
            notifications: Outbox returned by a committed mutation

        Returns:
            One DeliveryResult per notification
        """
        results = []
        for notification in notifications:
            try:
                result = await self._deliver(notification)
            except Exception as e:
                logger.error(
                    f"Failed to notify {notification.user_id} about {notification.request_id}: {str(e)}",
                    exc_info=True,
                )
                result = DeliveryResult(False, str(e), user_id=notification.user_id)

            if not result.success:
                logger.warning(
                    f"Notification for {notification.request_id} to {notification.user_id} "
                    f"not delivered: {result.message}"
                )
            results.append(result)
        return results

    async def _deliver(self, notification: Notification) -> DeliveryResult:
        details = notification_details(notification.status, notification.is_refiller)
        if details is None:
            return DeliveryResult(False, f"Unknown status: {notification.status}", user_id=notification.user_id)

        user = await self.user_repo.find_by_user_id(notification.user_id)
        if user is None or not is_plausible_token(user.fcm_token):
            return DeliveryResult(False, "FCM token not found", user_id=notification.user_id)

        result = await self.gateway.send(
            user.fcm_token,
            details,
            {"requestId": notification.request_id, "status": notification.status},
        )
        result.user_id = notification.user_id

        if result.should_remove_token:
            await self.user_repo.clear_push_token(notification.user_id, user.fcm_token)
            logger.info(f"Removed stale push token for {notification.user_id}")
        return result


# Create global instance
notification_dispatcher = NotificationDispatcher()
