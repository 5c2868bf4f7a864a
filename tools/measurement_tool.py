"""Measurement Tool - customer measurement profiles."""

import logging
from typing import Any, Optional

from models.customer import MeasurementRecord
from tools.api_client import TailorApiClient, parse_record
from tools.errors import ServiceError

logger = logging.getLogger(__name__)


class MeasurementTool:
    """MeasurementService implementation over the REST API."""

    def __init__(self, client: Optional[TailorApiClient] = None):
        self.client = client or TailorApiClient()

    async def get_by_customer(self, customer_id: str) -> Optional[MeasurementRecord]:
        """
        Load the saved profile of a customer.

        Returns:
            MeasurementRecord, or None when the customer has no profile yet
        """
        try:
            data = await self.client.request("measurements.get", "GET", f"measurements/{customer_id}")
        except ServiceError as exc:
            if exc.is_not_found:
                logger.info("[MeasurementTool] No saved measurements for %s", customer_id)
                return None
            raise

        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return None
        return parse_record("measurements.get", MeasurementRecord, data)

    async def create(self, data: dict[str, Any]) -> MeasurementRecord:
        created = await self.client.request("measurements.create", "POST", "measurements", json=data)
        return parse_record(
            "measurements.create", MeasurementRecord, created if isinstance(created, dict) else data
        )

    async def update(self, measurement_id: str, data: dict[str, Any]) -> MeasurementRecord:
        updated = await self.client.request(
            "measurements.update", "PUT", f"measurements/{measurement_id}", json=data
        )
        return parse_record(
            "measurements.update", MeasurementRecord, updated if isinstance(updated, dict) else data
        )
