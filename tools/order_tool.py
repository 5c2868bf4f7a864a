"""Order Tool - create and update orders."""

import logging
from typing import Any, Optional

from tools.api_client import TailorApiClient
from tools.errors import ServiceError

logger = logging.getLogger(__name__)


class OrderTool:
    """OrderService implementation over the REST API."""

    def __init__(self, client: Optional[TailorApiClient] = None):
        self.client = client or TailorApiClient()

    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        order = await self.client.request("orders.create", "POST", "orders", json=payload)
        if not isinstance(order, dict):
            raise ServiceError("orders.create", "Backend returned no order")
        logger.info("[OrderTool] Created order %s", order.get("orderNumber") or order.get("_id"))
        return order

    async def update(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        order = await self.client.request("orders.update", "PUT", f"orders/{order_id}", json=payload)
        if not isinstance(order, dict):
            raise ServiceError("orders.update", "Backend returned no order")
        logger.info("[OrderTool] Updated order %s", order_id)
        return order
