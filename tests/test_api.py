import asyncio
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from conftest import FakeCustomerService, FakeMeasurementService, FakeOrderService
from config.settings import Settings
from models.customer import Customer
from tools.errors import ServiceError
from workflow import create_order_wizard

ASHA = Customer(customer_id="c1", name="Asha Patel", gender="female")


@pytest.fixture
def services():
    return {
        "customer_service": FakeCustomerService([ASHA]),
        "measurement_service": FakeMeasurementService(),
        "order_service": FakeOrderService(),
    }


@pytest.fixture
def client(services):
    from app import create_app

    settings = Settings(log_level="WARNING")

    def factory(order=None):
        from conftest import FakeFabricService

        return create_order_wizard(settings, fabric_service=FakeFabricService(), order=order, **services)

    app = create_app(settings=settings, wizard_factory=factory)
    app.config["TESTING"] = True
    return app.test_client()


def _open(client):
    response = client.post("/api/wizard", json={})
    assert response.status_code == 201
    return response.get_json()["session_id"]


def test_health(client):
    assert client.get("/health").get_json()["status"] == "ok"


def test_unknown_session_is_404(client):
    assert client.get("/api/wizard/nope").status_code == 404
    assert client.post("/api/wizard/nope/advance").status_code == 404


def test_guard_failure_is_422_with_issues(client):
    sid = _open(client)
    response = client.post(f"/api/wizard/{sid}/advance")

    assert response.status_code == 422
    body = response.get_json()
    assert body["result"]["issues"][0]["field"] == "customer"
    assert body["wizard"]["state"] == "customer_selection"


def test_full_order_flow(client, services):
    sid = _open(client)

    found = client.get(f"/api/wizard/{sid}/customers/search", query_string={"q": "asha"}).get_json()
    assert found["data"][0]["customer_id"] == "c1"

    assert client.put(f"/api/wizard/{sid}/customer", json={"_id": "c1", "name": "Asha Patel"}).status_code == 200
    assert client.post(f"/api/wizard/{sid}/advance").status_code == 200

    added = client.post(f"/api/wizard/{sid}/items", json={"category": "ACCESSORIES", "name": "Dupatta"})
    assert added.get_json()["wizard"]["draft"]["line_items"][0]["garment_type_code"] == "dupatta"
    assert client.patch(f"/api/wizard/{sid}/items/0", json={"unit_price": 45, "quantity": 2}).status_code == 200

    assert client.post(f"/api/wizard/{sid}/advance").status_code == 200
    assert client.get(f"/api/wizard/{sid}/measurements").get_json()["plan"] == []
    assert client.post(f"/api/wizard/{sid}/advance").status_code == 200

    assert client.put(f"/api/wizard/{sid}/dates", json={"delivery_date": "2099-01-01"}).status_code == 200
    paid = client.put(f"/api/wizard/{sid}/payment", json={"discount": 10, "advance": 1000})
    assert paid.get_json()["wizard"]["totals"] == {
        "subtotal": 90.0, "discount_amount": 9.0, "total": 81.0, "advance": 81.0, "balance": 0.0,
    }
    assert client.put(f"/api/wizard/{sid}/details", json={"urgency": "high", "notes": "Gift"}).status_code == 200

    submitted = client.post(f"/api/wizard/{sid}/advance")
    assert submitted.status_code == 200
    assert submitted.get_json()["result"]["state"] == "submitted"
    assert client.get(f"/api/wizard/{sid}").status_code == 404

    payload = services["order_service"].created[0]
    assert payload["urgency"] == "high"
    assert payload["payment"] == {"total": 81.0, "advance": 81.0, "discount": 10.0, "discountType": "percentage"}


def test_rejected_mutation_is_422(client):
    sid = _open(client)
    response = client.delete(f"/api/wizard/{sid}/items/3")
    assert response.status_code == 422
    assert response.get_json()["errors"][0]["field"] == "line_items"


def test_service_error_is_502(client, services):
    services["customer_service"].error = ServiceError("customers.search", "Backend unreachable")
    sid = _open(client)

    response = client.get(f"/api/wizard/{sid}/customers/search", query_string={"q": "asha"})

    assert response.status_code == 502
    assert response.get_json()["service_error"]["message"] == "Backend unreachable"


def test_cancel_removes_session(client):
    sid = _open(client)
    assert client.delete(f"/api/wizard/{sid}").get_json()["result"]["state"] == "cancelled"
    assert client.get(f"/api/wizard/{sid}").status_code == 404


def test_catalog_endpoints(client):
    resolved = client.get("/api/catalog/resolve", query_string={"name": "Jubba"}).get_json()
    assert resolved["definition"]["code"] == "kurta"
    assert resolved["fields"][0]["key"] == "chest"

    items = client.get("/api/catalog/items", query_string={"category": "WESTCOATS"}).get_json()["items"]
    assert [i["display_name"] for i in items] == ["West Coat", "Nehru", "Shrug"]

    assert client.get("/api/catalog/schema/accessory").get_json()["fields"] == []
    assert client.get("/api/catalog/schema/cape").status_code == 404


def test_async_calls_share_one_loop_and_release_the_lock():
    from app import api

    async def current_loop():
        return asyncio.get_running_loop()

    assert api._run(current_loop()) is api._wizard_loop
    assert api._run(current_loop()) is api._wizard_loop
    assert not api._loop_lock.locked()
