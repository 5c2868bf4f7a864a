"""Wire payload schemas consumed by the external order service."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and unset optionals dropped."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CustomerFabricPayload(_WireModel):
    description: str = ""
    type: str = ""
    color: str = ""
    quantity: float = 0


class GarmentPayload(_WireModel):
    """One garment entry of an order request."""

    type: str = Field(..., description="Transport garment-type string")
    name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., description="Unit price", ge=0)
    fabric: Optional[str] = Field(None, description="Fabric id")
    fabric_source: Literal["lounge", "customer"] = "lounge"
    fabric_used: Optional[float] = None
    customer_fabric_details: Optional[CustomerFabricPayload] = None
    fit: Literal["slim", "regular", "loose", "custom"] = "regular"
    style: Optional[str] = None
    special_instructions: Optional[str] = None
    accessories: Optional[list[str]] = None
    measurements: Optional[dict[str, float]] = None


class PaymentPayload(_WireModel):
    """Payment block. ``total`` already has the discount applied."""

    total: float = Field(..., ge=0)
    advance: float = Field(..., ge=0)
    discount: float = Field(default=0, ge=0)
    discount_type: Literal["percentage", "amount"] = "percentage"


class OrderRequest(_WireModel):
    """Order create/update request. Immutable once built."""

    customer: str
    garments: list[GarmentPayload] = Field(..., min_length=1)
    delivery_date: str = Field(..., description="ISO date")
    trial_date: Optional[str] = Field(None, description="ISO date")
    urgency: Literal["low", "medium", "high", "urgent"] = "medium"
    notes: Optional[str] = None
    measurement_unit: Optional[str] = None
    payment: PaymentPayload
