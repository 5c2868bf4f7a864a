"""Customer, fabric and measurement records as returned by the tailoring backend."""

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.garment import Gender


# Legacy measurement keys still found in stored profiles
LEGACY_MEASUREMENT_KEYS = {
    "kurtalLength": "kurtaLength",
    "sleeveLength": "armLength",
    "sleeve": "armLength",
}

_MEASUREMENT_META_KEYS = {
    "_id",
    "id",
    "customer",
    "garmentType",
    "unit",
    "notes",
    "measurements",
    "createdAt",
    "updatedAt",
    "__v",
    "height",
    "weight",
}


class Customer(BaseModel):
    """Customer reference selected or created during the customer step."""

    customer_id: str = Field(..., alias="_id", description="Backend customer id")
    name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    total_orders: Optional[int] = Field(None, alias="totalOrders")
    total_spent: Optional[float] = Field(None, alias="totalSpent")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class CustomerCreate(BaseModel):
    """New customer form. Name, phone, gender and address are required."""

    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    gender: Gender
    address: str = Field(..., min_length=1)

    model_config = ConfigDict(str_strip_whitespace=True, use_enum_values=True)


class Fabric(BaseModel):
    """Fabric available in the shop (lounge stock)."""

    fabric_id: str = Field(..., alias="_id")
    name: str
    type: Optional[str] = None
    color: Optional[str] = None
    price_per_unit: Optional[float] = Field(None, alias="pricePerUnit")
    unit: Optional[str] = None
    available_stock: Optional[float] = Field(None, alias="availableStock")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MeasurementRecord(BaseModel):
    """
    Customer measurement profile from the measurement service.

    The backend stores values as flat numeric fields next to metadata; they
    are collected into ``values`` and legacy keys are renamed.
    """

    measurement_id: Optional[str] = Field(None, alias="_id")
    customer_id: Optional[str] = None
    garment_type: Optional[str] = Field(None, alias="garmentType")
    unit: str = "inch"
    values: dict[str, Decimal] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _collect_values(cls, data: Any):
        if not isinstance(data, dict) or "values" in data:
            return data

        values: dict[str, Decimal] = {}
        nested = data.get("measurements")
        sources = [data]
        if isinstance(nested, dict):
            sources.append(nested)

        for source in sources:
            for key, raw in source.items():
                if key in _MEASUREMENT_META_KEYS:
                    continue
                if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
                    continue
                try:
                    value = Decimal(str(raw))
                except ArithmeticError:
                    continue
                if not value.is_finite() or value <= 0:
                    continue
                values[LEGACY_MEASUREMENT_KEYS.get(key, key)] = value

        customer = data.get("customer")
        if isinstance(customer, dict):
            customer = customer.get("_id") or customer.get("id")

        return {
            **data,
            "customer_id": data.get("customer_id") or customer,
            "values": values,
        }
