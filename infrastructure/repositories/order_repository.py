"""
订单仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.order.entity import Order, OrderPaymentUpdate, OrderStatus, PaymentDetails
from domain.order.repository import OrderRepository
from infrastructure.models.order import OrderModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    """订单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        """将数据库模型转换为领域实体"""
        try:
            status = OrderStatus(model.status)
        except ValueError:
            status = OrderStatus.PENDING
        return Order(
            id=model.id,
            status=status,
            payment_status=model.payment_status,
            payment_external_id=model.payment_external_id,
            payment_method=model.payment_method,
            payment_details=PaymentDetails.from_dict(model.payment_details),
            created_at=model.created_at,
            updated_at=model.updated_at,
            payment_confirmed_at=model.payment_confirmed_at,
            metadata=model.extra_metadata or {},
        )

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        """根据ID获取订单"""
        result = await self.session.execute(
            select(OrderModel).where(OrderModel.id == order_id)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def apply_payment(self, order_id: str, update_: OrderPaymentUpdate) -> bool:
        """单条 UPDATE 语句整体写入支付字段组，不做读-改-写"""
        result = await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id)
            .values(
                status=update_.status.value,
                payment_status=update_.payment_status,
                payment_external_id=update_.payment_external_id,
                payment_method=update_.payment_method,
                payment_details=update_.payment_details.to_dict(),
                payment_confirmed_at=update_.payment_confirmed_at,
                updated_at=update_.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        matched = (result.rowcount or 0) > 0
        logger.info(
            "order_payment_written",
            order_id=order_id,
            status=update_.status.value,
            payment_status=update_.payment_status,
            matched=matched,
        )
        return matched
