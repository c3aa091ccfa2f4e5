"""
Webhook 审计日志模型 - 只追加
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index

from .base import Base, utc_now


class WebhookLogModel(Base):
    """每条入站通知对应一行，写入后不再修改"""
    __tablename__ = "webhook_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    timestamp = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        comment="记录时间"
    )
    event_kind = Column(String(100), nullable=False, comment="事件类型，如 payment.updated")
    external_payment_id = Column(String(100), nullable=False, index=True, comment="网关支付ID或 unknown")
    outcome = Column(String(20), nullable=False, index=True, comment="received/success/info/error")
    order_id = Column(String(100), nullable=True, index=True, comment="关联订单ID")
    detected_format = Column(String(20), nullable=True, comment="feed/standard/api_v2/unknown")
    request_id = Column(String(64), nullable=True, comment="请求追踪ID")
    detail = Column(JSON, nullable=True, comment="处理详情")

    __table_args__ = (
        Index("ix_webhook_logs_timestamp", "timestamp"),
    )

    def __repr__(self):
        return (
            f"<WebhookLogModel(id={self.id}, outcome='{self.outcome}', "
            f"payment_id='{self.external_payment_id}', order_id='{self.order_id}')>"
        )
