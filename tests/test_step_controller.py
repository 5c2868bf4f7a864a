import asyncio
import sys
from decimal import Decimal
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from conftest import FakeCustomerService, FakeMeasurementService, FakeOrderService
from models.customer import MeasurementRecord
from tools.errors import ServiceError
from workflow.controller import StepController
from workflow.steps import StepKey, build_steps
from workflow.submitter import OrderSubmitter


async def _to_review(controller, customer):
    controller.select_customer(customer)
    assert (await controller.advance()).ok
    controller.store.add_line_item("ACCESSORIES", "Tie")
    controller.store.update_line_item(0, {"unit_price": 35, "quantity": 2})
    assert (await controller.advance()).ok
    assert (await controller.advance()).ok
    controller.store.set_dates("2026-01-20")
    assert controller.state == StepKey.REVIEW_AND_PAYMENT.value


@pytest.mark.asyncio
async def test_customer_step_requires_customer(controller):
    result = await controller.advance()

    assert not result.ok
    assert result.state == "customer_selection"
    assert result.issues[0].field == "customer"
    assert result.issues[0].message == "Please select or create a customer"


@pytest.mark.asyncio
async def test_product_step_requires_a_line_item(controller, customer):
    controller.select_customer(customer)
    await controller.advance()

    rejected = await controller.advance()
    assert not rejected.ok
    assert rejected.issues[0].field == "line_items"

    controller.store.add_line_item("UPPERS", "Shirt")
    accepted = await controller.advance()
    assert accepted.ok
    assert accepted.state == "measurements"


@pytest.mark.asyncio
async def test_product_step_requires_garment_names(controller, customer):
    controller.select_customer(customer)
    await controller.advance()
    controller.store.add_line_item("UPPERS", "")

    result = await controller.advance()
    assert result.issues[0].field == "line_items[0].garment_name"


@pytest.mark.asyncio
async def test_measurement_step_blocks_on_missing_required_fields(controller, customer):
    controller.select_customer(customer)
    await controller.advance()
    controller.store.add_line_item("BOTTOMS", "Skirts")
    await controller.advance()

    blocked = await controller.advance()
    assert not blocked.ok
    assert {i.field for i in blocked.issues} == {
        "line_items[0].measurements.waist",
        "line_items[0].measurements.hip",
        "line_items[0].measurements.skirtLength",
    }

    for key, value in {"waist": 28, "hip": 38, "skirtLength": 30}.items():
        controller.store.set_measurement(0, key, value)
    assert (await controller.advance()).ok


@pytest.mark.asyncio
async def test_measurement_step_passes_through_for_accessories(controller, customer):
    controller.select_customer(customer)
    await controller.advance()
    controller.store.add_line_item("ACCESSORIES", "Tie")
    controller.store.add_line_item("ACCESSORIES", "Dupatta")
    controller.store.add_line_item("UPPERS", "Custom Cape")
    await controller.advance()

    assert controller.measurement_plan()[0].garment_name == "Custom Cape"
    assert controller.validate_current() == []
    assert (await controller.advance()).ok


def test_retreat_is_free_but_not_past_first_step(controller):
    assert not controller.retreat().ok
    controller.index = 2
    result = controller.retreat()
    assert result.ok
    assert result.state == "product_selection"


@pytest.mark.asyncio
async def test_search_failure_keeps_step_and_draft(controller, customer, service_error):
    controller.select_customer(customer)
    controller.customer_service = FakeCustomerService(error=service_error)

    result = await controller.search_customers("asha")

    assert not result.ok
    assert result.service_error.operation == "customers.search"
    assert controller.state == "customer_selection"
    assert controller.store.draft.customer_id == "c1"
    assert controller.busy is False


@pytest.mark.asyncio
async def test_search_returns_customers(controller):
    result = await controller.search_customers("asha")
    assert result.ok
    assert [c.customer_id for c in result.data] == ["c1"]


@pytest.mark.asyncio
async def test_create_customer_validates_form_then_selects(controller):
    invalid = await controller.create_customer({"name": "Ravi", "phone": "", "gender": "male"})
    assert not invalid.ok
    assert {i.field for i in invalid.issues} >= {"customer.phone", "customer.address"}
    assert controller.store.draft.customer is None

    created = await controller.create_customer(
        {"name": "Ravi", "phone": "555-0199", "gender": "male", "address": "12 Mill Road"}
    )
    assert created.ok
    assert controller.store.draft.customer.name == "Ravi"
    assert (await controller.advance()).ok


@pytest.mark.asyncio
async def test_list_fabrics(controller):
    result = await controller.list_fabrics({"type": "linen"})
    assert result.ok
    assert result.data[0].name == "Linen"


@pytest.mark.asyncio
async def test_load_saved_measurements(controller, customer, measurement_service):
    controller.select_customer(customer)
    controller.store.add_line_item("UPPERS", "Shirt")

    empty = await controller.load_saved_measurements()
    assert empty.ok and empty.data is None

    measurement_service.record = MeasurementRecord.model_validate({"_id": "m1", "chest": 40, "neck": 15.5})
    loaded = await controller.load_saved_measurements()
    assert loaded.ok
    assert controller.store.draft.line_items[0].measurements == {"chest": Decimal("40"), "neck": Decimal("15.5")}


@pytest.mark.asyncio
async def test_final_advance_submits_and_discards(controller, customer, order_service):
    await _to_review(controller, customer)

    result = await controller.advance()

    assert result.ok
    assert result.state == "submitted"
    assert result.order["orderNumber"] == "ORD-0001"
    assert order_service.created[0]["customer"] == "c1"
    assert controller.store.draft.line_items == []

    closed = await controller.advance()
    assert not closed.ok
    assert closed.issues[0].field == "wizard"


@pytest.mark.asyncio
async def test_failed_submit_keeps_draft_for_retry(controller, customer, order_service):
    await _to_review(controller, customer)
    order_service.error = ServiceError("orders.create", "Internal error", status_code=500)

    result = await controller.advance()

    assert not result.ok
    assert result.state == "review_and_payment"
    assert result.service_error.status_code == 500
    assert len(controller.store.draft.line_items) == 1

    order_service.error = None
    assert (await controller.advance()).ok


@pytest.mark.asyncio
async def test_review_requires_delivery_date(controller, customer):
    await _to_review(controller, customer)
    controller.store.set_dates(None)

    result = await controller.advance()
    assert not result.ok
    assert result.issues[0].field == "delivery_date"


@pytest.mark.asyncio
async def test_no_double_submit_while_pending(store, customer, catalog, resolver):
    release = asyncio.Event()

    class SlowOrderService(FakeOrderService):
        async def create(self, payload):
            await release.wait()
            return await super().create(payload)

    orders = SlowOrderService()
    controller = StepController(
        store,
        OrderSubmitter(orders, catalog=catalog, resolver=resolver),
        customer_service=FakeCustomerService([customer]),
        measurement_service=FakeMeasurementService(),
    )
    await _to_review(controller, customer)

    first = asyncio.ensure_future(controller.advance())
    await asyncio.sleep(0)
    assert controller.busy

    second = await controller.advance()
    assert not second.ok
    assert second.issues[0].message == "Please wait for the pending request to finish"
    assert not controller.retreat().ok
    assert not controller.cancel().ok

    release.set()
    assert (await first).ok
    assert len(orders.created) == 1
    assert controller.busy is False


def test_cancel_discards_draft(controller, customer):
    controller.select_customer(customer)
    result = controller.cancel()

    assert result.ok
    assert result.state == "cancelled"
    assert controller.store.draft.customer is None


@pytest.mark.asyncio
async def test_configured_schedule_step(store, submitter, customer):
    steps = build_steps(["customer_selection", "product_selection", "schedule", "review_and_payment"])
    controller = StepController(store, submitter, steps=steps)
    controller.select_customer(customer)
    await controller.advance()
    controller.store.add_line_item("ACCESSORIES", "Tie")
    await controller.advance()

    assert controller.state == "schedule"
    assert (await controller.advance()).issues[0].field == "delivery_date"
    controller.store.set_dates("2026-02-01")
    assert (await controller.advance()).state == "review_and_payment"


def test_unknown_step_key_is_a_configuration_error():
    with pytest.raises(ValueError):
        build_steps(["customer_selection", "fitting_room"])
    with pytest.raises(ValueError):
        build_steps(["measurements", "measurements"])


def test_snapshot_reports_totals(controller):
    controller.store.add_line_item("UPPERS", "Shirt")
    controller.store.update_line_item(0, {"unit_price": "65.5", "quantity": 2})

    snapshot = controller.snapshot()
    assert snapshot.totals["subtotal"] == 131.0
    assert snapshot.steps == ["customer_selection", "product_selection", "measurements", "review_and_payment"]
    assert snapshot.issues[0].field == "customer"


def test_snapshot_suggests_advance(store, submitter):
    wizard = StepController(store, submitter, steps=build_steps(), advance_percentage=40)
    store.add_line_item("UPPERS", "Shirt")
    store.update_line_item(0, {"unit_price": "65.5", "quantity": 2})

    assert wizard.snapshot().suggested_advance == 52.4

    store.set_payment_terms(discount=100)
    assert wizard.snapshot().suggested_advance == 0.0
