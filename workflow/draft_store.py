"""Order draft store: invariant-preserving mutations of one OrderDraft.

Every operation works on a copy of the draft and only commits it when the
result is valid. Rejected operations return field-scoped issues and leave the
draft untouched. After each committed mutation the advance is re-clamped to
the new total.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional

from pydantic import ValidationError

from models.customer import LEGACY_MEASUREMENT_KEYS, Customer
from models.garment import GarmentTypeCode
from models.order import (
    DerivedTotals,
    DiscountType,
    LineItem,
    MutationResult,
    OrderDraft,
    Urgency,
    ValidationIssue,
    to_decimal,
    to_money,
)
from models.patches import LineItemPatch, apply_line_item_patch
from services.garment_catalog import GarmentCatalog, get_garment_catalog
from services.measurement_schema import MeasurementSchemaResolver, get_measurement_resolver
from services.pricing import clamp_advance, clamp_discount, compute_totals

logger = logging.getLogger(__name__)


def issues_from_validation_error(exc: ValidationError, prefix: str) -> list[ValidationIssue]:
    """Flatten a pydantic ValidationError into field-scoped issues."""
    issues = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        field = f"{prefix}.{location}" if prefix and location else (prefix or location)
        issues.append(ValidationIssue(field=field, message=error.get("msg", "Invalid value")))
    return issues


def parse_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO strings (a time part is ignored)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    text = str(value).strip().replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(text).replace(tzinfo=None)
    except ValueError:
        return datetime.combine(date.fromisoformat(text[:10]), datetime.min.time())


class OrderDraftStore:
    """Owns the draft of one wizard session."""

    def __init__(
        self,
        draft: Optional[OrderDraft] = None,
        catalog: Optional[GarmentCatalog] = None,
        resolver: Optional[MeasurementSchemaResolver] = None,
        measurement_unit: str = "inch",
        default_urgency: Urgency | str = Urgency.MEDIUM,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.catalog = catalog or get_garment_catalog()
        self.resolver = resolver or get_measurement_resolver()
        self.measurement_unit = measurement_unit
        self.default_urgency = Urgency(default_urgency)
        self._clock = clock
        self._draft = draft.model_copy(deep=True) if draft else self._new_draft()

    def _new_draft(self) -> OrderDraft:
        return OrderDraft(
            created_at=self._clock(),
            urgency=self.default_urgency,
            measurement_unit=self.measurement_unit,
        )

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def draft(self) -> OrderDraft:
        return self._draft

    def snapshot(self) -> OrderDraft:
        """Deep copy of the current draft."""
        return self._draft.model_copy(deep=True)

    def totals(self) -> DerivedTotals:
        d = self._draft
        return compute_totals(d.line_items, d.discount, d.discount_type, d.advance)

    def _gender(self) -> Optional[str]:
        return self._draft.customer.gender if self._draft.customer else None

    # ------------------------------------------------------------------
    # Commit helpers
    # ------------------------------------------------------------------

    def _ok(self, draft: OrderDraft) -> MutationResult:
        totals = compute_totals(draft.line_items, draft.discount, draft.discount_type, draft.advance)
        draft.advance = totals.advance
        self._draft = draft
        return MutationResult(ok=True, draft=self.snapshot(), totals=totals)

    def _reject(self, *issues: ValidationIssue) -> MutationResult:
        logger.debug("[OrderDraftStore] Rejected: %s", [i.field for i in issues])
        return MutationResult(ok=False, errors=list(issues), draft=self.snapshot(), totals=self.totals())

    def _index_issue(self, index: int) -> Optional[ValidationIssue]:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self._draft.line_items):
            return ValidationIssue(field="line_items", message=f"No line item at index {index}")
        return None

    # ------------------------------------------------------------------
    # Customer
    # ------------------------------------------------------------------

    def set_customer(self, customer: Customer | Mapping[str, Any] | None) -> MutationResult:
        """Select a customer (or clear the selection with ``None``)."""
        if customer is not None and not isinstance(customer, Customer):
            try:
                customer = Customer.model_validate(dict(customer))
            except ValidationError as exc:
                return self._reject(*issues_from_validation_error(exc, "customer"))

        draft = self.snapshot()
        draft.customer = customer
        return self._ok(draft)

    # ------------------------------------------------------------------
    # Line items
    # ------------------------------------------------------------------

    def add_line_item(self, category: Optional[str], name: Optional[str]) -> MutationResult:
        """Add a garment with quantity 1 and price 0, resolving its type code."""
        name = (name or "").strip()
        definition = self.catalog.resolve(category, name, self._gender())
        item = LineItem(
            garment_category=(category or definition.category).upper(),
            garment_name=name,
            garment_type_code=definition.code,
        )
        draft = self.snapshot()
        draft.line_items.append(item)
        logger.info(
            "[OrderDraftStore] Added %r as %s (item %d)",
            name, definition.code.value, len(draft.line_items) - 1,
        )
        return self._ok(draft)

    def update_line_item(self, index: int, patch: LineItemPatch | Mapping[str, Any]) -> MutationResult:
        """
        Apply a partial update to one line item.

        Quantity and price are clamped. Renaming re-resolves the garment type
        and drops measurements and accessories the new garment does not have.

        Args:
            index: Line item position
            patch: LineItemPatch or a dict of its fields

        Returns:
            MutationResult (rejected for bad index, unknown measurement keys,
            non-positive measurements or unknown accessory options)
        """
        problem = self._index_issue(index)
        if problem:
            return self._reject(problem)

        prefix = f"line_items[{index}]"
        if not isinstance(patch, LineItemPatch):
            try:
                patch = LineItemPatch.model_validate(dict(patch))
            except ValidationError as exc:
                return self._reject(*issues_from_validation_error(exc, prefix))

        existing = self._draft.line_items[index]
        updated = apply_line_item_patch(existing, patch)

        definition = self.catalog.resolve(updated["garment_category"], updated["garment_name"], self._gender())
        if patch.renames_garment:
            updated["garment_type_code"] = definition.code
            if not updated["garment_category"]:
                updated["garment_category"] = definition.category
        code = updated["garment_type_code"]

        if patch.measurements:
            given = {k: v for k, v in patch.measurements.items() if v is not None}
            issues = self.resolver.validate_measurements(code, given, f"{prefix}.measurements")
            if issues:
                return self._reject(*issues)

        if patch.accessories is not None:
            unknown = [a for a in patch.accessories if a not in definition.accessory_options]
            if unknown:
                return self._reject(
                    ValidationIssue(
                        field=f"{prefix}.accessories",
                        message=f"Unknown option(s) for {definition.display_name}: {', '.join(unknown)}",
                    )
                )

        if patch.renames_garment:
            allowed = set(self.resolver.keys_for(code))
            updated["measurements"] = {k: v for k, v in updated["measurements"].items() if k in allowed}
            updated["accessories"] = [a for a in updated["accessories"] if a in definition.accessory_options]

        try:
            item = LineItem.model_validate(updated)
        except ValidationError as exc:
            return self._reject(*issues_from_validation_error(exc, prefix))

        draft = self.snapshot()
        draft.line_items[index] = item
        return self._ok(draft)

    def remove_line_item(self, index: int) -> MutationResult:
        problem = self._index_issue(index)
        if problem:
            return self._reject(problem)
        draft = self.snapshot()
        removed = draft.line_items.pop(index)
        logger.info("[OrderDraftStore] Removed %r (item %d)", removed.garment_name, index)
        return self._ok(draft)

    def toggle_accessory(self, index: int, option: str) -> MutationResult:
        """Switch a style option on or off for one line item."""
        problem = self._index_issue(index)
        if problem:
            return self._reject(problem)
        current = list(self._draft.line_items[index].accessories)
        if option in current:
            current.remove(option)
        else:
            current.append(option)
        return self.update_line_item(index, LineItemPatch(accessories=current))

    def set_measurement(self, index: int, key: str, value: Any) -> MutationResult:
        """Set one measurement; ``None`` or an empty string removes it."""
        if value is not None and value != "":
            try:
                value = to_decimal(value)
            except ValueError:
                return self._reject(
                    ValidationIssue(field=f"line_items[{index}].measurements.{key}", message="Must be a number")
                )
        else:
            value = None
        return self.update_line_item(index, LineItemPatch(measurements={key: value}))

    def apply_saved_measurements(self, values: Mapping[str, Any]) -> MutationResult:
        """Prefill empty schema fields of every line item from a saved profile."""
        saved: dict[str, Decimal] = {}
        for key, raw in values.items():
            try:
                value = to_decimal(raw)
            except ValueError:
                continue
            if value > 0:
                saved[LEGACY_MEASUREMENT_KEYS.get(key, key)] = value

        draft = self.snapshot()
        filled = 0
        for item in draft.line_items:
            merged = dict(item.measurements)
            for key in self.resolver.keys_for(item.garment_type_code):
                if key not in merged and key in saved:
                    merged[key] = saved[key]
                    filled += 1
            item.measurements = merged
        logger.info("[OrderDraftStore] Prefilled %d measurement(s) from saved profile", filled)
        return self._ok(draft)

    # ------------------------------------------------------------------
    # Dates, payment, notes
    # ------------------------------------------------------------------

    def set_dates(self, delivery: Any, trial: Any = None) -> MutationResult:
        """
        Set delivery and optional trial date.

        Delivery must be strictly after the order date, trial on or before
        delivery. Passing ``None`` for delivery clears both dates.
        """
        issues = []
        try:
            delivery_date = parse_date(delivery)
        except ValueError:
            delivery_date = None
            issues.append(ValidationIssue(field="delivery_date", message="Invalid date"))
        try:
            trial_date = parse_date(trial)
        except ValueError:
            trial_date = None
            issues.append(ValidationIssue(field="trial_date", message="Invalid date"))
        if issues:
            return self._reject(*issues)

        if delivery_date is None:
            if trial_date is not None:
                return self._reject(ValidationIssue(field="delivery_date", message="Set a delivery date first"))
        elif delivery_date <= self._draft.order_date:
            issues.append(
                ValidationIssue(field="delivery_date", message="Delivery date must be after the order date")
            )
        if delivery_date and trial_date and trial_date > delivery_date:
            issues.append(
                ValidationIssue(field="trial_date", message="Trial date must be on or before the delivery date")
            )
        if issues:
            return self._reject(*issues)

        draft = self.snapshot()
        draft.delivery_date = delivery_date
        draft.trial_date = trial_date
        return self._ok(draft)

    def set_payment_terms(
        self,
        discount: Any = None,
        discount_type: DiscountType | str | None = None,
        advance: Any = None,
    ) -> MutationResult:
        """
        Set discount and advance. ``None`` leaves a value unchanged.

        A percentage discount is clamped to [0, 100], an amount discount to
        >= 0 (it is capped at the subtotal when totals are derived). The
        advance is clamped to [0, total].
        """
        issues = []
        draft = self.snapshot()

        if discount_type is not None:
            try:
                draft.discount_type = DiscountType(discount_type)
            except ValueError:
                issues.append(ValidationIssue(field="discount_type", message="Must be 'percentage' or 'amount'"))

        parsed = {}
        for name, raw in (("discount", discount), ("advance", advance)):
            if raw is None:
                continue
            try:
                parsed[name] = to_money(raw)
            except ValueError:
                issues.append(ValidationIssue(field=name, message="Must be a number"))
        if issues:
            return self._reject(*issues)

        draft.discount = clamp_discount(parsed.get("discount", draft.discount), draft.discount_type)
        totals = compute_totals(draft.line_items, draft.discount, draft.discount_type, Decimal("0"))
        draft.advance = clamp_advance(parsed.get("advance", draft.advance), totals.total)
        return self._ok(draft)

    def set_urgency(self, urgency: Urgency | str) -> MutationResult:
        try:
            value = Urgency(urgency)
        except ValueError:
            return self._reject(ValidationIssue(field="urgency", message="Must be low, medium, high or urgent"))
        draft = self.snapshot()
        draft.urgency = value
        return self._ok(draft)

    def set_notes(self, text: Optional[str]) -> MutationResult:
        draft = self.snapshot()
        draft.notes = (text or "").strip()
        return self._ok(draft)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def discard(self) -> None:
        """Drop the draft and start over with an empty one."""
        logger.info("[OrderDraftStore] Draft discarded")
        self._draft = self._new_draft()

    @classmethod
    def from_order(
        cls,
        record: Mapping[str, Any],
        catalog: Optional[GarmentCatalog] = None,
        resolver: Optional[MeasurementSchemaResolver] = None,
        measurement_unit: str = "inch",
    ) -> "OrderDraftStore":
        """
        Build a store pre-populated from an existing order (edit mode).

        The draft creation time is taken from the order's ``orderDate`` (or
        ``createdAt``) so its delivery date stays valid. Measurements outside
        the garment's schema are dropped.
        """
        store = cls(catalog=catalog, resolver=resolver, measurement_unit=measurement_unit)

        customer = record.get("customer")
        if isinstance(customer, str):
            customer = Customer(customer_id=customer)
        elif isinstance(customer, Mapping):
            customer = Customer.model_validate(dict(customer))
        gender = customer.gender if customer else None

        items = []
        for raw in record.get("garments") or []:
            name = str(raw.get("name") or "").strip()
            definition = store.catalog.resolve(raw.get("category"), name, gender)
            code = definition.code
            if code == GarmentTypeCode.OTHER and raw.get("type"):
                try:
                    code = GarmentTypeCode(raw["type"])
                except ValueError:
                    pass
            allowed = set(store.resolver.keys_for(code))
            measurements = {}
            for key, value in (raw.get("measurements") or {}).items():
                key = LEGACY_MEASUREMENT_KEYS.get(key, key)
                try:
                    value = to_decimal(value)
                except ValueError:
                    continue
                if key in allowed and value > 0:
                    measurements[key] = value
            items.append(
                LineItem(
                    garment_category=definition.category,
                    garment_name=name,
                    garment_type_code=code,
                    quantity=max(1, int(raw.get("quantity") or 1)),
                    unit_price=max(Decimal("0"), to_decimal(raw.get("price"))),
                    fabric_ref=raw.get("fabric") if isinstance(raw.get("fabric"), str) else None,
                    fabric_source=raw.get("fabricSource") or "lounge",
                    fabric_used=raw.get("fabricUsed") or 0,
                    customer_fabric=raw.get("customerFabricDetails"),
                    fit=raw.get("fit") or "regular",
                    style=raw.get("style") or "",
                    special_instructions=raw.get("specialInstructions") or "",
                    accessories=list(raw.get("accessories") or []),
                    measurements=measurements,
                )
            )

        payment = record.get("payment") or {}
        discount_type = DiscountType(payment.get("discountType") or DiscountType.PERCENTAGE)
        discount = to_decimal(payment.get("discount"))
        if "discount" not in payment and payment.get("total") is not None:
            subtotal = compute_totals(items).subtotal
            paid_total = to_decimal(payment["total"])
            if paid_total < subtotal:
                discount_type, discount = DiscountType.AMOUNT, subtotal - paid_total

        created_at = parse_datetime(record.get("orderDate") or record.get("createdAt")) or store._clock()
        draft = OrderDraft(
            customer=customer,
            line_items=items,
            created_at=created_at,
            delivery_date=parse_date(record.get("deliveryDate")),
            trial_date=parse_date(record.get("trialDate")),
            urgency=record.get("urgency") or store.default_urgency,
            discount=clamp_discount(discount, discount_type),
            discount_type=discount_type,
            advance=payment.get("advance") or 0,
            notes=record.get("notes") or "",
            measurement_unit=record.get("measurementUnit") or measurement_unit,
            order_id=record.get("_id") or record.get("id"),
        )
        store._ok(draft)
        logger.info("[OrderDraftStore] Loaded order %s for editing", draft.order_id)
        return store
