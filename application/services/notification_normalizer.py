"""
Notification normalizer: maps the gateway's webhook payload shapes onto one
canonical Notification.

Known shapes, checked in this order:

- feed:      {"topic": "payment", "id": 123}
- standard:  {"action": "payment.updated", "data": {"id": "123"}}
- api_v2:    {"type": "payment", "data": {"id": "123"}}

Anything else degrades to the unknown case. This module never raises.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from domain.webhook.entity import Notification, NotificationFormat, UNKNOWN


# Feed topics and formats whose notifications are worth a gateway lookup
PAYMENT_TOPICS = frozenset({"payment", "merchant_order"})


def _present(value: Any) -> bool:
    return value is not None and value != "" and value is not False


def _coerce_id(value: Any) -> Optional[str]:
    """Render an id as a string; numeric ids lose any trailing .0."""
    if not _present(value) or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (int, str)):
        s = str(value).strip()
        return s or None
    return None


def _data_id(payload: Mapping[str, Any]) -> Optional[str]:
    data = payload.get("data")
    if isinstance(data, Mapping):
        return _coerce_id(data.get("id"))
    return None


def normalize_notification(payload: Any, headers: Optional[Mapping[str, str]] = None) -> Notification:
    """Detect the payload shape and extract (event_kind, external_payment_id)."""
    if not isinstance(payload, Mapping):
        return Notification(
            raw_payload=payload,
            detected_format=NotificationFormat.UNKNOWN,
            event_kind=UNKNOWN,
            external_payment_id=UNKNOWN,
        )

    topic = payload.get("topic")
    feed_id = _coerce_id(payload.get("id"))
    if _present(topic) and feed_id is not None:
        topic = str(topic)
        kind = "payment.updated" if topic == "payment" else f"{topic}.notification"
        return Notification(payload, NotificationFormat.FEED, kind, feed_id)

    action = payload.get("action")
    data_id = _data_id(payload)
    if _present(action) and data_id is not None:
        return Notification(payload, NotificationFormat.STANDARD, str(action), data_id)

    event_type = payload.get("type")
    if _present(event_type) and _present(payload.get("data")):
        return Notification(payload, NotificationFormat.API_V2, str(event_type), data_id or UNKNOWN)

    fallback_id = feed_id or data_id or UNKNOWN
    return Notification(payload, NotificationFormat.UNKNOWN, UNKNOWN, fallback_id)


def is_payment_event(notification: Notification) -> bool:
    """Whether the notification warrants fetching the payment from the gateway."""
    if not notification.has_payment_id:
        return False
    if notification.detected_format == NotificationFormat.API_V2:
        return True
    if "payment" in notification.event_kind:
        return True
    if notification.detected_format == NotificationFormat.FEED:
        topic = notification.raw_payload.get("topic")
        return str(topic) in PAYMENT_TOPICS
    return False
