"""Infrastructure models package exports."""
from .base import Base, metadata
from .order import OrderModel
from .webhook_log import WebhookLogModel

__all__ = [
    "Base",
    "metadata",
    "OrderModel",
    "WebhookLogModel",
]
