"""Customer Tool - search and create customers in the tailoring backend."""

import logging
from typing import Optional

from models.customer import Customer, CustomerCreate
from tools.api_client import TailorApiClient, parse_record
from tools.errors import ServiceError

logger = logging.getLogger(__name__)


class CustomerTool:
    """CustomerService implementation over the REST API."""

    def __init__(self, client: Optional[TailorApiClient] = None):
        self.client = client or TailorApiClient()

    async def search(self, query: str) -> list[Customer]:
        """
        Search customers by name, phone or email.

        Args:
            query: Search text

        Returns:
            Matching customers (empty list for a blank query)
        """
        query = (query or "").strip()
        if not query:
            return []

        data = await self.client.request("customers.search", "GET", "customers/search", params={"q": query})
        if isinstance(data, dict):
            data = data.get("customers") or data.get("items") or []
        customers = [
            parse_record("customers.search", Customer, item) for item in data or [] if isinstance(item, dict)
        ]
        logger.info("[CustomerTool] %d customer(s) for %r", len(customers), query)
        return customers

    async def create(self, data: CustomerCreate) -> Customer:
        created = await self.client.request(
            "customers.create", "POST", "customers", json=data.model_dump(exclude_none=True)
        )
        if not isinstance(created, dict):
            raise ServiceError("customers.create", "Backend returned no customer")
        customer = parse_record("customers.create", Customer, created)
        logger.info("[CustomerTool] Created customer %s", customer.customer_id)
        return customer
