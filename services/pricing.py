"""Pricing engine: pure functions deriving order totals.

All arithmetic is done in ``Decimal`` at full precision. ``round_money`` is
applied only when values leave the core (display or wire payload).
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from models.order import DerivedTotals, DiscountType, LineItem, to_decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def round_money(value) -> Decimal:
    """Round to two decimals, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def line_total(item: LineItem) -> Decimal:
    return to_decimal(item.unit_price) * item.quantity


def subtotal_of(line_items: Iterable[LineItem]) -> Decimal:
    return sum((line_total(item) for item in line_items), ZERO)


def clamp_discount(discount, discount_type: DiscountType | str, subtotal=None) -> Decimal:
    """
    Clamp a discount input.

    Percentages are clamped to [0, 100]. Amounts are kept >= 0 and, when a
    subtotal is given, capped at it.
    """
    value = max(ZERO, to_decimal(discount))
    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        return min(value, HUNDRED)
    if subtotal is not None:
        return min(value, max(ZERO, to_decimal(subtotal)))
    return value


def clamp_advance(advance, total) -> Decimal:
    """Clamp an advance to [0, total]."""
    return min(max(ZERO, to_decimal(advance)), max(ZERO, to_decimal(total)))


def discount_amount(subtotal: Decimal, discount, discount_type: DiscountType | str) -> Decimal:
    discount = clamp_discount(discount, discount_type, subtotal)
    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        return subtotal * discount / HUNDRED
    return discount


def compute_totals(
    line_items: Iterable[LineItem],
    discount=ZERO,
    discount_type: DiscountType | str = DiscountType.PERCENTAGE,
    advance=ZERO,
) -> DerivedTotals:
    """
    Derive subtotal, discount, total and balance.

    Args:
        line_items: Draft line items
        discount: Discount input (percentage or amount)
        discount_type: How to interpret ``discount``
        advance: Advance paid; clamped to [0, total]

    Returns:
        DerivedTotals (unrounded)
    """
    subtotal = subtotal_of(line_items)
    reduction = discount_amount(subtotal, discount, discount_type)
    total = max(ZERO, subtotal - reduction)
    paid = clamp_advance(advance, total)
    return DerivedTotals(
        subtotal=subtotal,
        discount_amount=reduction,
        total=total,
        advance=paid,
        balance=total - paid,
    )


def suggest_advance(total, percentage) -> Decimal:
    """Suggested advance as a share of the total, rounded for display."""
    share = min(max(ZERO, to_decimal(percentage)), HUNDRED)
    return round_money(to_decimal(total) * share / HUNDRED)
