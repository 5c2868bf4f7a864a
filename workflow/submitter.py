"""Order submitter: holistic validation, wire mapping and submission."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field

from models.api_payload import (
    CustomerFabricPayload,
    GarmentPayload,
    OrderRequest,
    PaymentPayload,
)
from models.order import (
    DerivedTotals,
    DiscountType,
    FabricSource,
    LineItem,
    OrderDraft,
    ValidationIssue,
    ValidationResult,
    to_decimal,
)
from services.garment_catalog import CatalogError, GarmentCatalog, get_garment_catalog
from services.measurement_schema import MeasurementSchemaResolver, get_measurement_resolver
from services.pricing import HUNDRED, compute_totals, round_money
from tools.base import MeasurementService, OrderService
from tools.errors import ServiceError, ServiceErrorInfo
from workflow.steps import STEP_REGISTRY, StepDefinition

logger = logging.getLogger(__name__)


class SubmissionResult(BaseModel):
    """Outcome of ``OrderSubmitter.submit``."""

    ok: bool
    order: Optional[dict[str, Any]] = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    error: Optional[ServiceErrorInfo] = None
    draft: OrderDraft
    measurements_synced: bool = False


def _money(value) -> float:
    return float(round_money(value))


class OrderSubmitter:
    """Validates a finished draft and hands it to the OrderService."""

    def __init__(
        self,
        order_service: OrderService,
        measurement_service: Optional[MeasurementService] = None,
        catalog: Optional[GarmentCatalog] = None,
        resolver: Optional[MeasurementSchemaResolver] = None,
        steps: Optional[list[StepDefinition]] = None,
        sync_measurements: bool = True,
    ):
        self.order_service = order_service
        self.measurement_service = measurement_service
        self.catalog = catalog or get_garment_catalog()
        self.resolver = resolver or get_measurement_resolver()
        # Every registered guard by default, not only the configured steps
        self.steps = steps or list(STEP_REGISTRY.values())
        self.sync_measurements = sync_measurements

    # ========================================================================
    # Validation
    # ========================================================================

    def validate(self, draft: OrderDraft) -> ValidationResult:
        """
        Re-check all invariants and step guards on the whole draft.

        Returns:
            ValidationResult with de-duplicated issues
        """
        issues: list[ValidationIssue] = []
        for step in self.steps:
            issues.extend(step.check(draft, self.resolver))
        issues.extend(self._invariant_issues(draft))

        unique = list({(i.field, i.message): i for i in issues}.values())
        return ValidationResult(issues=unique)

    def _invariant_issues(self, draft: OrderDraft) -> list[ValidationIssue]:
        issues = []
        for index, item in enumerate(draft.line_items):
            prefix = f"line_items[{index}]"
            if item.quantity < 1:
                issues.append(ValidationIssue(field=f"{prefix}.quantity", message="Quantity must be at least 1"))
            if item.unit_price < 0:
                issues.append(ValidationIssue(field=f"{prefix}.unit_price", message="Price cannot be negative"))
            try:
                self.resolver.fields_for(item.garment_type_code)
            except CatalogError as exc:
                issues.append(ValidationIssue(field=f"{prefix}.garment_type_code", message=str(exc)))

        if draft.discount < 0 or (
            draft.discount_type == DiscountType.PERCENTAGE and draft.discount > HUNDRED
        ):
            issues.append(ValidationIssue(field="discount", message="Discount is out of range"))

        totals = self.totals(draft)
        if draft.advance < 0 or draft.advance > totals.total:
            issues.append(ValidationIssue(field="advance", message="Advance cannot exceed the order total"))
        return issues

    @staticmethod
    def totals(draft: OrderDraft) -> DerivedTotals:
        return compute_totals(draft.line_items, draft.discount, draft.discount_type, draft.advance)

    # ========================================================================
    # Wire mapping
    # ========================================================================

    def _garment_payload(self, item: LineItem) -> GarmentPayload:
        customer_fabric = None
        if item.fabric_source == FabricSource.CUSTOMER and item.customer_fabric:
            customer_fabric = CustomerFabricPayload(
                description=item.customer_fabric.description,
                type=item.customer_fabric.type,
                color=item.customer_fabric.color,
                quantity=float(item.customer_fabric.quantity),
            )

        return GarmentPayload(
            type=self.catalog.transport_type(item.garment_type_code),
            name=item.garment_name,
            quantity=item.quantity,
            price=_money(item.unit_price),
            fabric=item.fabric_ref if item.fabric_source == FabricSource.LOUNGE else None,
            fabric_source=item.fabric_source.value,
            fabric_used=float(item.fabric_used) if item.fabric_used > 0 else None,
            customer_fabric_details=customer_fabric,
            fit=item.fit.value,
            style=item.style or None,
            special_instructions=item.special_instructions or None,
            accessories=list(item.accessories) or None,
            measurements={k: float(v) for k, v in item.measurements.items()} or None,
        )

    def to_payload(self, draft: OrderDraft) -> OrderRequest:
        """
        Map a draft to the order service's request shape.

        Garment type codes become transport strings; derived totals are
        folded into the payment block, rounded to cents.

        Raises:
            ValueError: Draft has no customer, garments or delivery date
        """
        if not draft.customer_id:
            raise ValueError("Draft has no customer")
        if not draft.line_items:
            raise ValueError("Draft has no garments")
        if draft.delivery_date is None:
            raise ValueError("Draft has no delivery date")

        totals = self.totals(draft)
        discount = (
            totals.discount_amount
            if draft.discount_type == DiscountType.AMOUNT
            else draft.discount
        )
        return OrderRequest(
            customer=draft.customer_id,
            garments=[self._garment_payload(item) for item in draft.line_items],
            delivery_date=draft.delivery_date.isoformat(),
            trial_date=draft.trial_date.isoformat() if draft.trial_date else None,
            urgency=draft.urgency.value,
            notes=draft.notes or None,
            measurement_unit=draft.measurement_unit,
            payment=PaymentPayload(
                total=_money(totals.total),
                advance=_money(totals.advance),
                discount=float(round_money(discount)),
                discount_type=draft.discount_type.value,
            ),
        )

    @staticmethod
    def totals_from_order(order: Mapping[str, Any]) -> DerivedTotals:
        """Recompute totals from a stored (echoed) order."""
        items = [
            LineItem(
                garment_category="OTHER",
                garment_name=str(g.get("name") or ""),
                quantity=max(1, int(g.get("quantity") or 1)),
                unit_price=g.get("price") or 0,
            )
            for g in order.get("garments") or []
        ]
        payment = order.get("payment") or {}
        return compute_totals(
            items,
            payment.get("discount") or 0,
            payment.get("discountType") or DiscountType.PERCENTAGE,
            payment.get("advance") or 0,
        )

    # ========================================================================
    # Submission
    # ========================================================================

    async def submit(self, draft: OrderDraft) -> SubmissionResult:
        """
        Validate and send the draft. All-or-nothing.

        Edit drafts (with ``order_id``) are sent as updates. On failure the
        draft is returned unchanged together with the service error.

        Args:
            draft: Completed draft

        Returns:
            SubmissionResult
        """
        result = self.validate(draft)
        if not result.is_valid:
            logger.info("[OrderSubmitter] Draft invalid: %s", list(result.messages()))
            return SubmissionResult(ok=False, issues=result.issues, draft=draft)

        payload = self.to_payload(draft).to_wire()
        try:
            if draft.is_edit:
                order = await self.order_service.update(draft.order_id, payload)
            else:
                order = await self.order_service.create(payload)
        except ServiceError as exc:
            logger.warning("[OrderSubmitter] Submission failed: %s", exc)
            return SubmissionResult(ok=False, error=exc.to_info(), draft=draft)

        logger.info(
            "[OrderSubmitter] Order %s for customer %s",
            "updated" if draft.is_edit else "created",
            draft.customer_id,
        )
        synced = await self._sync_measurements(draft) if self.sync_measurements else False
        return SubmissionResult(ok=True, order=order, draft=draft, measurements_synced=synced)

    async def _sync_measurements(self, draft: OrderDraft) -> bool:
        """Best effort: store the collected measurements on the customer profile."""
        if self.measurement_service is None:
            return False

        values: dict[str, Decimal] = {}
        for item in draft.line_items:
            for key, value in item.measurements.items():
                values.setdefault(key, to_decimal(value))
        if not values:
            return False

        data = {
            "customer": draft.customer_id,
            "unit": draft.measurement_unit,
            **{key: float(value) for key, value in values.items()},
        }
        codes = {item.garment_type_code for item in draft.line_items if item.measurements}
        if len(codes) == 1:
            data["garmentType"] = self.catalog.transport_type(next(iter(codes)))

        try:
            existing = await self.measurement_service.get_by_customer(draft.customer_id)
            if existing and existing.measurement_id:
                await self.measurement_service.update(existing.measurement_id, data)
            else:
                await self.measurement_service.create(data)
        except ServiceError as exc:
            logger.warning("[OrderSubmitter] Measurement sync failed: %s", exc)
            return False
        return True
