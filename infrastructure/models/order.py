"""
订单数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import Column, String, DateTime, JSON, Index

from .base import Base, TimestampMixin


class OrderModel(TimestampMixin, Base):
    """
    订单数据库模型

    订单由结账流程创建；对账只更新支付相关字段组
    """
    __tablename__ = "orders"

    # 主键（外部生成的不透明ID）
    id = Column(String(100), primary_key=True, comment="订单ID")

    status = Column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="订单状态: pending/paid/delivered/cancelled"
    )

    # 支付对账字段组（一次性整体写入）
    payment_status = Column(String(50), nullable=True, comment="网关最近一次返回的原始支付状态")
    payment_external_id = Column(String(100), nullable=True, index=True, comment="网关支付ID")
    payment_method = Column(String(50), nullable=True, comment="支付方式")
    payment_details = Column(JSON, nullable=True, comment="最近一次对账的支付快照")
    payment_confirmed_at = Column(DateTime(timezone=True), nullable=True, comment="最近一次对账时间")

    # 扩展元数据（结账流程写入，对账不修改）
    extra_metadata = Column("metadata", JSON, nullable=True, comment="扩展元数据")

    __table_args__ = (
        Index("ix_orders_status_created_at", "status", "created_at"),
    )

    def __repr__(self):
        return f"<OrderModel(id='{self.id}', status='{self.status}', payment_status='{self.payment_status}')>"
