"""Structured patch models for line-item updates."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.order import (
    CustomerFabricDetails,
    FabricSource,
    Fit,
    LineItem,
    to_decimal,
)


class LineItemPatch(BaseModel):
    """Partial update for a LineItem. ``None`` means "leave unchanged"."""

    garment_category: Optional[str] = None
    garment_name: Optional[str] = None
    quantity: Optional[int] = None
    unit_price: Optional[Decimal] = None
    fabric_ref: Optional[str] = None
    fabric_source: Optional[FabricSource] = None
    fabric_used: Optional[Decimal] = None
    customer_fabric: Optional[CustomerFabricDetails] = None
    fit: Optional[Fit] = None
    style: Optional[str] = Field(None, max_length=500)
    special_instructions: Optional[str] = Field(None, max_length=2000)
    accessories: Optional[list[str]] = None
    measurements: Optional[dict[str, Optional[Decimal]]] = Field(
        None, description="Merged into existing values; None removes a key"
    )

    model_config = ConfigDict(extra="forbid")

    @field_validator("unit_price", "fabric_used", mode="before")
    @classmethod
    def _coerce_money(cls, v):
        if v is None:
            return None
        return to_decimal(v)

    @field_validator("measurements", mode="before")
    @classmethod
    def _coerce_measurements(cls, v):
        if v is None:
            return None
        return {
            str(key): (None if val is None or val == "" else to_decimal(val))
            for key, val in dict(v).items()
        }

    @property
    def renames_garment(self) -> bool:
        return self.garment_name is not None or self.garment_category is not None


def apply_line_item_patch(existing: LineItem, patch: LineItemPatch) -> dict:
    """Merge a patch into a LineItem and return the raw field values.

    Quantity and price are clamped (quantity >= 1, price >= 0). The caller
    validates the result and re-resolves the garment type when the name
    changed.
    """
    updated = existing.model_dump()

    def _set(attr: str, value):
        if value is None:
            return
        updated[attr] = value

    _set("garment_category", patch.garment_category)
    _set("garment_name", patch.garment_name.strip() if patch.garment_name else None)
    _set("fabric_ref", patch.fabric_ref)
    _set("fabric_source", patch.fabric_source)
    _set("customer_fabric", patch.customer_fabric)
    _set("fit", patch.fit)
    _set("style", patch.style)
    _set("special_instructions", patch.special_instructions)
    _set("accessories", list(dict.fromkeys(patch.accessories)) if patch.accessories is not None else None)

    if patch.quantity is not None:
        updated["quantity"] = max(1, patch.quantity)
    if patch.unit_price is not None:
        updated["unit_price"] = max(Decimal("0"), patch.unit_price)
    if patch.fabric_used is not None:
        updated["fabric_used"] = max(Decimal("0"), patch.fabric_used)

    if patch.measurements is not None:
        merged = dict(updated.get("measurements") or {})
        for key, value in patch.measurements.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        updated["measurements"] = merged

    if updated.get("fabric_source") == FabricSource.CUSTOMER:
        updated["fabric_ref"] = None

    return updated
