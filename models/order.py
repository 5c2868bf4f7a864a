"""Order draft models: line items, draft aggregate and derived totals.

The draft is the in-progress order assembled by the order wizard. Money values
are kept as ``Decimal``. Entered amounts (unit price, discount, advance) are held
in cents; derived amounts are rounded only when presented or sent over the wire.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.customer import Customer
from models.garment import GarmentTypeCode

CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert user/wire input to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError("Expected a number")
    if value is None or (isinstance(value, str) and not value.strip()):
        return Decimal("0")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a valid number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def to_money(value: Any) -> Decimal:
    """Convert to Decimal and round to cents, half-up (prices, discount, advance)."""
    try:
        return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Amount out of range: {value!r}") from exc


# ============================================================================
# Enums
# ============================================================================


class Urgency(str, Enum):
    """Scheduling priority; does not affect price."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class DiscountType(str, Enum):
    """How the draft discount is interpreted."""

    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class Fit(str, Enum):
    """Garment fit."""

    SLIM = "slim"
    REGULAR = "regular"
    LOOSE = "loose"
    CUSTOM = "custom"


class FabricSource(str, Enum):
    """Where the fabric for a garment comes from."""

    LOUNGE = "lounge"  # shop stock, referenced by fabric_ref
    CUSTOMER = "customer"  # brought in by the customer


# ============================================================================
# Line items
# ============================================================================


class CustomerFabricDetails(BaseModel):
    """Description of fabric supplied by the customer."""

    description: str = ""
    type: str = ""
    color: str = ""
    quantity: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, v):
        return to_decimal(v)


class LineItem(BaseModel):
    """One garment entry within a draft."""

    garment_category: str = Field(..., description="Catalog category key")
    garment_name: str = Field(..., description="Free-form or catalog garment name")
    garment_type_code: GarmentTypeCode = GarmentTypeCode.OTHER

    quantity: int = Field(default=1, ge=1)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)

    # Fabric
    fabric_ref: Optional[str] = Field(None, description="Fabric id (lounge fabric)")
    fabric_source: FabricSource = FabricSource.LOUNGE
    fabric_used: Decimal = Field(default=Decimal("0"), ge=0)
    customer_fabric: Optional[CustomerFabricDetails] = None

    # Styling
    fit: Fit = Fit.REGULAR
    style: str = ""
    special_instructions: str = ""
    accessories: list[str] = Field(default_factory=list)

    measurements: dict[str, Decimal] = Field(
        default_factory=dict, description="Schema-constrained measurement values"
    )

    model_config = ConfigDict(validate_assignment=True)

    @field_validator("unit_price", mode="before")
    @classmethod
    def _coerce_price(cls, v):
        return to_money(v)

    @field_validator("fabric_used", mode="before")
    @classmethod
    def _coerce_fabric_used(cls, v):
        return to_decimal(v)

    @field_validator("measurements", mode="before")
    @classmethod
    def _coerce_measurements(cls, v):
        if v is None:
            return {}
        return {str(key): to_decimal(val) for key, val in dict(v).items()}


# ============================================================================
# Derived totals and validation results
# ============================================================================


class DerivedTotals(BaseModel):
    """Totals derived from line items and payment terms. Never stored."""

    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    advance: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")

    model_config = ConfigDict(frozen=True)

    def as_display(self) -> dict[str, float]:
        """Two-decimal floats for presentation."""
        from services.pricing import round_money

        return {name: float(round_money(value)) for name, value in self}


class ValidationIssue(BaseModel):
    """Field-scoped validation message. Returned as data, never raised."""

    field: str
    message: str


class ValidationResult(BaseModel):
    """Outcome of a holistic draft validation."""

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def messages(self) -> dict[str, str]:
        return {issue.field: issue.message for issue in self.issues}


# ============================================================================
# Draft aggregate
# ============================================================================


class OrderDraft(BaseModel):
    """
    In-progress order owned by one wizard session.

    Only mutated through OrderDraftStore, which keeps the invariants.
    """

    customer: Optional[Customer] = None
    line_items: list[LineItem] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=datetime.now)
    delivery_date: Optional[date] = None
    trial_date: Optional[date] = None
    urgency: Urgency = Urgency.MEDIUM

    discount: Decimal = Field(default=Decimal("0"), ge=0)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    advance: Decimal = Field(default=Decimal("0"), ge=0)

    notes: str = ""
    measurement_unit: str = "inch"

    # Set when the draft edits an existing order
    order_id: Optional[str] = None

    @field_validator("discount", "advance", mode="before")
    @classmethod
    def _coerce_money(cls, v):
        return to_money(v)

    @property
    def customer_id(self) -> Optional[str]:
        return self.customer.customer_id if self.customer else None

    @property
    def order_date(self) -> date:
        return self.created_at.date()

    @property
    def is_edit(self) -> bool:
        return self.order_id is not None


class MutationResult(BaseModel):
    """Result of an OrderDraftStore operation."""

    ok: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    draft: OrderDraft
    totals: DerivedTotals
