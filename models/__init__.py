"""Models package with lazy imports to keep import order between modules flat."""

from typing import Any

# Define all exports but don't import them yet
__all__ = [
    # Garment models
    "GarmentTypeCode",
    "GarmentTypeDefinition",
    "Gender",
    "MeasurementField",
    # Customer models
    "Customer",
    "CustomerCreate",
    "Fabric",
    "MeasurementRecord",
    # Order models
    "CustomerFabricDetails",
    "DerivedTotals",
    "DiscountType",
    "FabricSource",
    "Fit",
    "LineItem",
    "MutationResult",
    "OrderDraft",
    "Urgency",
    "ValidationIssue",
    "ValidationResult",
    # Patches
    "LineItemPatch",
    # Wire payloads
    "GarmentPayload",
    "OrderRequest",
    "PaymentPayload",
]


# Lazy import mapping
_LAZY_IMPORTS = {
    # Garment models
    "GarmentTypeCode": ("models.garment", "GarmentTypeCode"),
    "GarmentTypeDefinition": ("models.garment", "GarmentTypeDefinition"),
    "Gender": ("models.garment", "Gender"),
    "MeasurementField": ("models.garment", "MeasurementField"),
    # Customer models
    "Customer": ("models.customer", "Customer"),
    "CustomerCreate": ("models.customer", "CustomerCreate"),
    "Fabric": ("models.customer", "Fabric"),
    "MeasurementRecord": ("models.customer", "MeasurementRecord"),
    # Order models
    "CustomerFabricDetails": ("models.order", "CustomerFabricDetails"),
    "DerivedTotals": ("models.order", "DerivedTotals"),
    "DiscountType": ("models.order", "DiscountType"),
    "FabricSource": ("models.order", "FabricSource"),
    "Fit": ("models.order", "Fit"),
    "LineItem": ("models.order", "LineItem"),
    "MutationResult": ("models.order", "MutationResult"),
    "OrderDraft": ("models.order", "OrderDraft"),
    "Urgency": ("models.order", "Urgency"),
    "ValidationIssue": ("models.order", "ValidationIssue"),
    "ValidationResult": ("models.order", "ValidationResult"),
    # Patches
    "LineItemPatch": ("models.patches", "LineItemPatch"),
    # Wire payloads
    "GarmentPayload": ("models.api_payload", "GarmentPayload"),
    "OrderRequest": ("models.api_payload", "OrderRequest"),
    "PaymentPayload": ("models.api_payload", "PaymentPayload"),
}


def __getattr__(name: str) -> Any:
    """
    Lazy import implementation.

    Example:
        from models import OrderDraft  # Only imports models.order when accessed
    """
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        import importlib

        module = importlib.import_module(module_name)
        return getattr(module, attr_name)

    raise AttributeError(f"module 'models' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Return list of available attributes for autocomplete."""
    return __all__
