"""
Workflow package for the order wizard.

Contains the step registry, the draft store, the submitter and the
StepController, plus a factory wiring them to the backend tools.
"""

from typing import Any, Mapping, Optional

from config.settings import Settings, get_settings
from services.garment_catalog import get_garment_catalog
from services.measurement_schema import get_measurement_resolver
from workflow.controller import StepController
from workflow.draft_store import OrderDraftStore
from workflow.steps import build_steps
from workflow.submitter import OrderSubmitter

__all__ = ["StepController", "OrderDraftStore", "OrderSubmitter", "create_order_wizard"]


def create_order_wizard(
    settings: Optional[Settings] = None,
    *,
    customer_service=None,
    fabric_service=None,
    measurement_service=None,
    order_service=None,
    order: Optional[Mapping[str, Any]] = None,
) -> StepController:
    """
    Create a StepController for a new (or edited) order.

    Services default to the HTTP tools configured from settings.

    Args:
        settings: Settings (defaults to get_settings())
        customer_service: CustomerService implementation
        fabric_service: FabricService implementation
        measurement_service: MeasurementService implementation
        order_service: OrderService implementation
        order: Existing order record to edit

    Returns:
        StepController positioned on the first step
    """
    settings = settings or get_settings()

    if None in (customer_service, fabric_service, measurement_service, order_service):
        from tools import CustomerTool, FabricTool, MeasurementTool, OrderTool, TailorApiClient

        client = TailorApiClient(settings=settings)
        customer_service = customer_service or CustomerTool(client)
        fabric_service = fabric_service or FabricTool(client)
        measurement_service = measurement_service or MeasurementTool(client)
        order_service = order_service or OrderTool(client)

    catalog = get_garment_catalog()
    resolver = get_measurement_resolver()
    steps = build_steps(settings.step_keys)

    if order is not None:
        store = OrderDraftStore.from_order(
            order, catalog=catalog, resolver=resolver, measurement_unit=settings.measurement_unit
        )
    else:
        store = OrderDraftStore(
            catalog=catalog,
            resolver=resolver,
            measurement_unit=settings.measurement_unit,
            default_urgency=settings.default_urgency,
        )

    submitter = OrderSubmitter(
        order_service,
        measurement_service=measurement_service,
        catalog=catalog,
        resolver=resolver,
        sync_measurements=settings.sync_measurements_on_submit,
    )
    return StepController(
        store,
        submitter,
        customer_service=customer_service,
        fabric_service=fabric_service,
        measurement_service=measurement_service,
        steps=steps,
        advance_percentage=settings.advance_percentage,
    )
