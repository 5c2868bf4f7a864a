"""Declarative step definitions for the order wizard.

Each step exposes a guard ``(draft, resolver) -> list[ValidationIssue]``. An
empty list means the user may move on. Guards never raise and never mutate
the draft.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, Optional

from models.order import OrderDraft, ValidationIssue
from services.measurement_schema import MeasurementSchemaResolver
from services.pricing import compute_totals

Guard = Callable[[OrderDraft, MeasurementSchemaResolver], list[ValidationIssue]]


class StepKey(str, Enum):
    CUSTOMER_SELECTION = "customer_selection"
    PRODUCT_SELECTION = "product_selection"
    MEASUREMENTS = "measurements"
    SCHEDULE = "schedule"
    REVIEW_AND_PAYMENT = "review_and_payment"


@dataclass(frozen=True)
class StepDefinition:
    key: StepKey
    title: str
    guard: Guard
    required_fields: tuple[str, ...] = field(default_factory=tuple)

    def check(self, draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
        return list(self.guard(draft, resolver))


# ============================================================================
# Guards
# ============================================================================


def customer_guard(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
    if draft.customer is None or not draft.customer_id:
        return [ValidationIssue(field="customer", message="Please select or create a customer")]
    return []


def product_guard(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
    if not draft.line_items:
        return [ValidationIssue(field="line_items", message="At least one garment is required")]

    issues = []
    for index, item in enumerate(draft.line_items):
        if not item.garment_name.strip():
            issues.append(
                ValidationIssue(field=f"line_items[{index}].garment_name", message="Garment name is required")
            )
        if item.quantity < 1:
            issues.append(
                ValidationIssue(field=f"line_items[{index}].quantity", message="Quantity must be at least 1")
            )
    return issues


def measurements_guard(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
    """Required fields of every line item must be filled.

    Line items whose schema has no required fields never block, so a draft
    made of accessories passes straight through.
    """
    issues = []
    for index, item in enumerate(draft.line_items):
        prefix = f"line_items[{index}].measurements"
        issues.extend(resolver.validate_measurements(item.garment_type_code, item.measurements, prefix))
        for key in resolver.missing_required(item.garment_type_code, item.measurements):
            label = next(
                (f.label for f in resolver.fields_for(item.garment_type_code) if f.key == key), key
            )
            issues.append(
                ValidationIssue(field=f"{prefix}.{key}", message=f"{label} is required for {item.garment_name}")
            )
    return issues


def schedule_guard(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
    if draft.delivery_date is None:
        return [ValidationIssue(field="delivery_date", message="Delivery date is required")]

    issues = []
    if draft.delivery_date <= draft.order_date:
        issues.append(
            ValidationIssue(field="delivery_date", message="Delivery date must be after the order date")
        )
    if draft.trial_date is not None and draft.trial_date > draft.delivery_date:
        issues.append(
            ValidationIssue(field="trial_date", message="Trial date must be on or before the delivery date")
        )
    return issues


def payment_guard(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> list[ValidationIssue]:
    issues = schedule_guard(draft, resolver)
    totals = compute_totals(draft.line_items, draft.discount, draft.discount_type, draft.advance)
    if draft.advance < 0 or draft.advance > totals.total:
        issues.append(ValidationIssue(field="advance", message="Advance cannot exceed the order total"))
    return issues


def needs_measurements(draft: OrderDraft, resolver: MeasurementSchemaResolver) -> bool:
    """Whether the measurement step has anything to collect."""
    return any(resolver.fields_for(item.garment_type_code) for item in draft.line_items)


# ============================================================================
# Registry
# ============================================================================


STEP_REGISTRY: Dict[StepKey, StepDefinition] = {
    StepKey.CUSTOMER_SELECTION: StepDefinition(
        key=StepKey.CUSTOMER_SELECTION,
        title="Customer",
        guard=customer_guard,
        required_fields=("customer",),
    ),
    StepKey.PRODUCT_SELECTION: StepDefinition(
        key=StepKey.PRODUCT_SELECTION,
        title="Products",
        guard=product_guard,
        required_fields=("line_items",),
    ),
    StepKey.MEASUREMENTS: StepDefinition(
        key=StepKey.MEASUREMENTS,
        title="Measurements",
        guard=measurements_guard,
        required_fields=("line_items.measurements",),
    ),
    StepKey.SCHEDULE: StepDefinition(
        key=StepKey.SCHEDULE,
        title="Dates",
        guard=schedule_guard,
        required_fields=("delivery_date",),
    ),
    StepKey.REVIEW_AND_PAYMENT: StepDefinition(
        key=StepKey.REVIEW_AND_PAYMENT,
        title="Review & Payment",
        guard=payment_guard,
        required_fields=("delivery_date", "advance"),
    ),
}


def build_steps(keys: Optional[Iterable[str]] = None) -> list[StepDefinition]:
    """
    Resolve configured step keys into step definitions.

    Args:
        keys: Step keys in order (defaults to all registered steps except
            ``schedule``)

    Returns:
        Ordered step definitions

    Raises:
        ValueError: Unknown, duplicate or empty step configuration
    """
    if keys is None:
        keys = [k for k in STEP_REGISTRY if k != StepKey.SCHEDULE]

    steps = []
    for raw in keys:
        try:
            key = raw if isinstance(raw, StepKey) else StepKey(str(raw).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown order step '{raw}'") from None
        if any(step.key == key for step in steps):
            raise ValueError(f"Order step '{key.value}' configured twice")
        steps.append(STEP_REGISTRY[key])

    if not steps:
        raise ValueError("At least one order step must be configured")
    return steps
