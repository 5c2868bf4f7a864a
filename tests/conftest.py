import sys
from datetime import datetime
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.customer import Customer, Fabric, MeasurementRecord
from services.garment_catalog import GarmentCatalog
from services.measurement_schema import MeasurementSchemaResolver
from tools.errors import ServiceError
from workflow.controller import StepController
from workflow.draft_store import OrderDraftStore
from workflow.steps import build_steps
from workflow.submitter import OrderSubmitter

ORDER_TIME = datetime(2026, 1, 10, 9, 30)


class FakeCustomerService:
    def __init__(self, customers=None, error=None):
        self.customers = customers or []
        self.error = error
        self.created = []

    async def search(self, query):
        if self.error:
            raise self.error
        return [c for c in self.customers if query.lower() in c.name.lower()]

    async def create(self, data):
        if self.error:
            raise self.error
        customer = Customer(customer_id=f"c{len(self.created) + 100}", name=data.name, gender=data.gender)
        self.created.append(customer)
        return customer


class FakeFabricService:
    async def list(self, filter=None):
        return [Fabric(fabric_id="f1", name="Linen", type="linen")]


class FakeMeasurementService:
    def __init__(self, record=None, error=None):
        self.record = record
        self.error = error
        self.created = []
        self.updated = []

    async def get_by_customer(self, customer_id):
        if self.error:
            raise self.error
        return self.record

    async def create(self, data):
        self.created.append(data)
        return MeasurementRecord.model_validate({"_id": "m-new", **data})

    async def update(self, measurement_id, data):
        self.updated.append((measurement_id, data))
        return MeasurementRecord.model_validate({"_id": measurement_id, **data})


class FakeOrderService:
    """Echoes the payload back like the backend does."""

    def __init__(self, error=None):
        self.error = error
        self.created = []
        self.updated = []

    async def create(self, payload):
        if self.error:
            raise self.error
        self.created.append(payload)
        return {"_id": "o1", "orderNumber": "ORD-0001", **payload}

    async def update(self, order_id, payload):
        if self.error:
            raise self.error
        self.updated.append((order_id, payload))
        return {"_id": order_id, **payload}


@pytest.fixture
def catalog():
    return GarmentCatalog()


@pytest.fixture
def resolver():
    return MeasurementSchemaResolver()


@pytest.fixture
def customer():
    return Customer(customer_id="c1", name="Asha Patel", phone="555-0101", gender="female")


@pytest.fixture
def store(catalog, resolver):
    return OrderDraftStore(catalog=catalog, resolver=resolver, clock=lambda: ORDER_TIME)


@pytest.fixture
def customer_service(customer):
    return FakeCustomerService([customer])


@pytest.fixture
def measurement_service():
    return FakeMeasurementService()


@pytest.fixture
def order_service():
    return FakeOrderService()


@pytest.fixture
def submitter(order_service, measurement_service, catalog, resolver):
    return OrderSubmitter(order_service, measurement_service=measurement_service, catalog=catalog, resolver=resolver)


@pytest.fixture
def controller(store, submitter, customer_service, measurement_service):
    return StepController(
        store,
        submitter,
        customer_service=customer_service,
        fabric_service=FakeFabricService(),
        measurement_service=measurement_service,
        steps=build_steps(),
    )


@pytest.fixture
def service_error():
    return ServiceError("customers.search", "Backend unreachable")
