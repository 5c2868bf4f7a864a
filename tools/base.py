from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from models.customer import Customer, CustomerCreate, Fabric, MeasurementRecord


@runtime_checkable
class CustomerService(Protocol):
    async def search(self, query: str) -> list[Customer]:
        """Customers whose name, phone or email match ``query``."""
        ...

    async def create(self, data: CustomerCreate) -> Customer:
        ...


@runtime_checkable
class FabricService(Protocol):
    async def list(self, filter: Optional[dict[str, Any]] = None) -> list[Fabric]:
        ...


@runtime_checkable
class MeasurementService(Protocol):
    async def get_by_customer(self, customer_id: str) -> Optional[MeasurementRecord]:
        """Saved measurement profile, or ``None`` when the customer has none."""
        ...

    async def create(self, data: dict[str, Any]) -> MeasurementRecord:
        ...

    async def update(self, measurement_id: str, data: dict[str, Any]) -> MeasurementRecord:
        ...


@runtime_checkable
class OrderService(Protocol):
    async def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create an order from a wire payload; returns the stored order."""
        ...

    async def update(self, order_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        ...
