"""
订单仓储接口 - 定义对账所需的订单数据访问抽象
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Order, OrderPaymentUpdate


class OrderRepository(ABC):
    """订单仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        """根据ID获取订单"""
        pass

    @abstractmethod
    async def apply_payment(self, order_id: str, update: OrderPaymentUpdate) -> bool:
        """Write the payment field group in a single atomic update.

        Returns False when no row matched (order vanished between read and write).
        """
        pass
