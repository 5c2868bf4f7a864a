import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.garment import GarmentTypeCode
from models.order import DiscountType
from models.patches import LineItemPatch
from workflow.draft_store import OrderDraftStore


def test_add_line_item_resolves_code(store):
    result = store.add_line_item("UPPERS", "Kamize")

    assert result.ok
    item = result.draft.line_items[0]
    assert item.garment_type_code == GarmentTypeCode.KURTA
    assert item.quantity == 1
    assert item.unit_price == Decimal("0")


def test_free_form_name_gets_default_code(store):
    item = store.add_line_item("UPPERS", "Hovercraft Cover").draft.line_items[0]
    assert item.garment_type_code == GarmentTypeCode.OTHER


def test_update_clamps_quantity_and_price(store):
    store.add_line_item("UPPERS", "Shirt")
    result = store.update_line_item(0, {"quantity": 0, "unit_price": -50})

    assert result.ok
    assert result.draft.line_items[0].quantity == 1
    assert result.draft.line_items[0].unit_price == Decimal("0")


def test_removing_missing_index_is_rejected_without_change(store):
    store.add_line_item("UPPERS", "Shirt")
    store.update_line_item(0, {"unit_price": 500})
    before = store.snapshot().model_dump()

    result = store.remove_line_item(5)

    assert not result.ok
    assert result.errors[0].field == "line_items"
    assert store.snapshot().model_dump() == before
    assert store.remove_line_item(-1).ok is False


def test_update_rejects_unknown_measurement(store):
    store.add_line_item("BOTTOMS", "Trousers")
    result = store.update_line_item(0, {"measurements": {"wingspan": 70}})

    assert not result.ok
    assert result.errors[0].field == "line_items[0].measurements.wingspan"
    assert store.draft.line_items[0].measurements == {}


def test_update_rejects_unknown_patch_field(store):
    store.add_line_item("BOTTOMS", "Trousers")
    result = store.update_line_item(0, {"colour": "red"})
    assert not result.ok
    assert result.errors[0].field.startswith("line_items[0]")


def test_rename_reresolves_and_prunes(store):
    store.add_line_item("UPPERS", "Shirt")
    store.update_line_item(0, LineItemPatch(measurements={"chest": 40, "waist": 34, "shirtLength": 30}))
    store.toggle_accessory(0, "Full Sleeve")

    result = store.update_line_item(0, {"garment_category": "BOTTOMS", "garment_name": "Trousers"})

    item = result.draft.line_items[0]
    assert item.garment_type_code == GarmentTypeCode.PANT
    assert item.measurements == {"waist": Decimal("34")}
    assert item.accessories == []


def test_set_measurement_and_remove(store):
    store.add_line_item("UPPERS", "Shirt")
    assert store.set_measurement(0, "chest", "40.5").ok
    assert store.draft.line_items[0].measurements["chest"] == Decimal("40.5")

    assert not store.set_measurement(0, "chest", -2).ok
    assert store.set_measurement(0, "chest", None).ok
    assert "chest" not in store.draft.line_items[0].measurements


def test_toggle_accessory(store):
    store.add_line_item("UPPERS", "Shirt")

    assert store.toggle_accessory(0, "Full Sleeve").draft.line_items[0].accessories == ["Full Sleeve"]
    assert store.toggle_accessory(0, "Full Sleeve").draft.line_items[0].accessories == []

    rejected = store.toggle_accessory(0, "Peak Lapel")
    assert not rejected.ok
    assert rejected.errors[0].field == "line_items[0].accessories"


def test_delivery_must_be_after_order_date(store):
    # store clock: 2026-01-10
    same_day = store.set_dates("2026-01-10")
    assert not same_day.ok
    assert same_day.errors[0].field == "delivery_date"

    assert not store.set_dates(date(2026, 1, 5)).ok
    assert store.draft.delivery_date is None

    ok = store.set_dates("2026-01-20", "2026-01-15")
    assert ok.ok
    assert ok.draft.delivery_date == date(2026, 1, 20)
    assert ok.draft.trial_date == date(2026, 1, 15)


def test_trial_after_delivery_is_rejected(store):
    result = store.set_dates("2026-01-20", "2026-01-21")
    assert not result.ok
    assert result.errors[0].field == "trial_date"


def test_trial_on_delivery_day_is_allowed(store):
    assert store.set_dates("2026-01-20", "2026-01-20").ok


def test_invalid_date_is_rejected(store):
    result = store.set_dates("next tuesday")
    assert not result.ok
    assert result.errors[0].message == "Invalid date"


def test_payment_terms_are_clamped(store):
    store.add_line_item("UPPERS", "Shirt")
    store.update_line_item(0, {"unit_price": 1000})

    result = store.set_payment_terms(discount=150, discount_type="percentage", advance=5000)

    assert result.ok
    assert result.draft.discount == Decimal("100")
    assert result.draft.advance == Decimal("0")
    assert result.totals.total == Decimal("0")


def test_amount_discount_capped_when_totals_derived(store):
    store.add_line_item("UPPERS", "Shirt")
    store.update_line_item(0, {"unit_price": 1000})

    result = store.set_payment_terms(discount=1500, discount_type=DiscountType.AMOUNT, advance=200)

    assert result.totals.discount_amount == Decimal("1000")
    assert result.totals.total == Decimal("0")
    assert result.totals.balance == Decimal("0")


def test_advance_reclamped_when_items_change(store):
    store.add_line_item("UPPERS", "Shirt")
    store.add_line_item("BOTTOMS", "Trousers")
    store.update_line_item(0, {"unit_price": 500})
    store.update_line_item(1, {"unit_price": 300})
    store.set_payment_terms(advance=700)

    result = store.remove_line_item(0)

    assert result.draft.advance == Decimal("300")
    assert result.totals.balance == Decimal("0")


def test_bad_payment_input_is_rejected(store):
    assert not store.set_payment_terms(discount_type="coupon").ok
    assert not store.set_payment_terms(advance="lots").ok
    assert not store.set_urgency("yesterday").ok
    assert store.set_urgency("urgent").draft.urgency.value == "urgent"


def test_snapshot_is_a_copy(store):
    store.add_line_item("UPPERS", "Shirt")
    snapshot = store.snapshot()
    snapshot.line_items.clear()
    assert len(store.draft.line_items) == 1


def test_set_customer_and_notes(store, customer):
    assert store.set_customer(customer).draft.customer_id == "c1"
    assert store.set_customer({"_id": "c2", "name": "Ravi"}).draft.customer_id == "c2"
    assert not store.set_customer({"name": "No id"}).ok
    assert store.set_notes("  rush job  ").draft.notes == "rush job"


def test_apply_saved_measurements_fills_only_empty_fields(store):
    store.add_line_item("UPPERS", "Shirt")
    store.add_line_item("ACCESSORIES", "Tie")
    store.set_measurement(0, "chest", 41)

    result = store.apply_saved_measurements({"chest": 39, "waist": 33, "sleeveLength": 25, "height": 0})

    shirt, tie = result.draft.line_items
    assert shirt.measurements == {
        "chest": Decimal("41"),
        "waist": Decimal("33"),
        "armLength": Decimal("25"),
    }
    assert tie.measurements == {}


def test_discard_resets_draft(store):
    store.add_line_item("UPPERS", "Shirt")
    store.discard()
    assert store.draft.line_items == []


def test_from_order_prefills_edit_draft(catalog, resolver):
    record = {
        "_id": "o9",
        "customer": {"_id": "c1", "name": "Asha Patel"},
        "orderDate": "2026-01-02T10:00:00.000Z",
        "deliveryDate": "2026-01-12T00:00:00.000Z",
        "urgency": "high",
        "garments": [
            {
                "type": "kurta",
                "name": "Kurta and Kurti",
                "quantity": 2,
                "price": 80,
                "measurements": {"chest": 38, "kurtalLength": 40, "wingspan": 70},
            }
        ],
        "payment": {"total": 140, "advance": 50},
    }

    store = OrderDraftStore.from_order(record, catalog=catalog, resolver=resolver)
    draft = store.draft

    assert draft.is_edit and draft.order_id == "o9"
    assert draft.order_date == date(2026, 1, 2)
    assert draft.delivery_date == date(2026, 1, 12)
    assert draft.line_items[0].garment_type_code == GarmentTypeCode.KURTA
    assert draft.line_items[0].measurements == {"chest": Decimal("38"), "kurtaLength": Decimal("40")}
    # total below subtotal without an explicit discount becomes an amount discount
    assert draft.discount_type == DiscountType.AMOUNT
    assert store.totals().total == Decimal("140")
    assert store.totals().balance == Decimal("90")
