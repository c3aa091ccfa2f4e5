"""
Webhook notification and audit entry value objects.

Both are immutable: a Notification is produced once per inbound call and
discarded after processing; an AuditEntry is written once and never updated.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


UNKNOWN = "unknown"


class NotificationFormat(str, Enum):
    FEED = "feed"            # {topic, id}
    STANDARD = "standard"    # {action, data: {id}}
    API_V2 = "api_v2"        # {type, data: {id}}
    UNKNOWN = "unknown"


class AuditOutcome(str, Enum):
    RECEIVED = "received"
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    raw_payload: Any
    detected_format: NotificationFormat
    event_kind: str
    external_payment_id: str

    @property
    def has_payment_id(self) -> bool:
        return self.external_payment_id != UNKNOWN


@dataclass(frozen=True)
class AuditEntry:
    event_kind: str
    external_payment_id: str
    outcome: AuditOutcome
    detail: dict = field(default_factory=dict)
    order_id: Optional[str] = None
    detected_format: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    @classmethod
    def for_notification(
        cls,
        notification: Notification,
        outcome: AuditOutcome,
        *,
        detail: Optional[dict] = None,
        order_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> "AuditEntry":
        return cls(
            event_kind=notification.event_kind,
            external_payment_id=notification.external_payment_id,
            outcome=outcome,
            detail=detail or {},
            order_id=order_id,
            detected_format=notification.detected_format.value,
            request_id=request_id,
        )
