"""
StepController - finite-state driver of the order wizard.

Walks an ordered list of StepDefinitions over one OrderDraftStore. Guards
decide whether ``advance`` may move on; the last ``advance`` submits. While
an external call is pending the controller is busy and refuses navigation,
further calls and submit re-entry.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Callable, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError

from models.customer import Customer, CustomerCreate
from models.garment import MeasurementField
from models.order import MutationResult, OrderDraft, ValidationIssue
from services.pricing import suggest_advance
from tools.base import CustomerService, FabricService, MeasurementService
from tools.errors import ServiceError, ServiceErrorInfo
from workflow.draft_store import OrderDraftStore, issues_from_validation_error
from workflow.steps import StepDefinition, build_steps, needs_measurements
from workflow.submitter import OrderSubmitter

logger = logging.getLogger(__name__)

SUBMITTED = "submitted"
CANCELLED = "cancelled"

BUSY_ISSUE = ValidationIssue(field="wizard", message="Please wait for the pending request to finish")
CLOSED_ISSUE = ValidationIssue(field="wizard", message="This order wizard is closed")


class StepResult(BaseModel):
    """Outcome of a navigation call."""

    ok: bool
    state: str
    step_index: int
    issues: list[ValidationIssue] = Field(default_factory=list)
    service_error: Optional[ServiceErrorInfo] = None
    order: Optional[dict[str, Any]] = None


class ServiceCallResult(BaseModel):
    """Outcome of an async helper call (search, create, load)."""

    ok: bool
    data: Any = None
    issues: list[ValidationIssue] = Field(default_factory=list)
    service_error: Optional[ServiceErrorInfo] = None


class MeasurementTask(BaseModel):
    """One line item of the measurement step."""

    index: int
    garment_name: str
    garment_type_code: str
    fields: list[MeasurementField]
    missing: list[str] = Field(default_factory=list)


class WizardSnapshot(BaseModel):
    state: str
    step_index: int
    steps: list[str]
    title: Optional[str] = None
    busy: bool = False
    measurements_needed: bool = True
    draft: OrderDraft
    totals: dict[str, float]
    suggested_advance: float = 0.0
    issues: list[ValidationIssue] = Field(default_factory=list)


class StepController:
    """Drives one order wizard session."""

    def __init__(
        self,
        store: OrderDraftStore,
        submitter: OrderSubmitter,
        customer_service: Optional[CustomerService] = None,
        fabric_service: Optional[FabricService] = None,
        measurement_service: Optional[MeasurementService] = None,
        steps: Optional[list[StepDefinition]] = None,
        advance_percentage: float = 50.0,
    ):
        """
        Initialize controller.

        Args:
            store: Draft store owned by this session
            submitter: Used by the final ``advance``
            customer_service: Customer search/create collaborator
            fabric_service: Fabric listing collaborator
            measurement_service: Saved-measurement collaborator
            steps: Ordered step definitions (default: build_steps())
            advance_percentage: Share of the total suggested as advance payment
        """
        self.store = store
        self.submitter = submitter
        self.customer_service = customer_service
        self.fabric_service = fabric_service
        self.measurement_service = measurement_service
        self.steps = steps or build_steps()
        self.advance_percentage = advance_percentage
        self.index = 0
        self.status: Optional[str] = None
        self.last_order: Optional[dict[str, Any]] = None
        self._busy = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def is_terminal(self) -> bool:
        return self.status is not None

    @property
    def current_step(self) -> Optional[StepDefinition]:
        return None if self.is_terminal else self.steps[self.index]

    @property
    def state(self) -> str:
        return self.status or self.steps[self.index].key.value

    @property
    def is_last_step(self) -> bool:
        return self.index == len(self.steps) - 1

    def _result(self, ok: bool, **kwargs) -> StepResult:
        return StepResult(ok=ok, state=self.state, step_index=self.index, **kwargs)

    def _blocked(self) -> Optional[ValidationIssue]:
        if self.is_terminal:
            return CLOSED_ISSUE
        if self._busy:
            return BUSY_ISSUE
        return None

    @contextmanager
    def _pending(self):
        self._busy = True
        try:
            yield
        finally:
            self._busy = False

    async def _call(self, operation: str, func: Callable[[], Awaitable[Any]]) -> ServiceCallResult:
        blocked = self._blocked()
        if blocked:
            return ServiceCallResult(ok=False, issues=[blocked])
        with self._pending():
            try:
                data = await func()
            except ServiceError as exc:
                logger.warning("[StepController] %s failed: %s", operation, exc)
                return ServiceCallResult(ok=False, service_error=exc.to_info())
        return ServiceCallResult(ok=True, data=data)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def validate_current(self) -> list[ValidationIssue]:
        """Guard issues of the current step (empty when it may be left)."""
        step = self.current_step
        if step is None:
            return []
        return step.check(self.store.draft, self.store.resolver)

    async def advance(self) -> StepResult:
        """
        Move to the next step, or submit when on the last step.

        Guard failures and service errors are returned as data; the step and
        the draft stay as they were.
        """
        blocked = self._blocked()
        if blocked:
            return self._result(False, issues=[blocked])

        issues = self.validate_current()
        if issues:
            logger.info("[StepController] %s blocked by %d issue(s)", self.state, len(issues))
            return self._result(False, issues=issues)

        if not self.is_last_step:
            self.index += 1
            logger.info("[StepController] -> %s", self.state)
            return self._result(True)

        with self._pending():
            submission = await self.submitter.submit(self.store.snapshot())

        if not submission.ok:
            return self._result(False, issues=submission.issues, service_error=submission.error)

        self.status = SUBMITTED
        self.last_order = submission.order
        self.store.discard()
        logger.info("[StepController] Order submitted")
        return self._result(True, order=submission.order)

    def retreat(self) -> StepResult:
        """Go back one step. No validation."""
        blocked = self._blocked()
        if blocked:
            return self._result(False, issues=[blocked])
        if self.index == 0:
            return self._result(False, issues=[ValidationIssue(field="wizard", message="Already at the first step")])
        self.index -= 1
        logger.info("[StepController] <- %s", self.state)
        return self._result(True)

    def cancel(self) -> StepResult:
        """Abandon the wizard. Nothing was persisted remotely, so nothing to undo."""
        blocked = self._blocked()
        if blocked:
            return self._result(False, issues=[blocked])
        self.store.discard()
        self.status = CANCELLED
        logger.info("[StepController] Wizard cancelled")
        return self._result(True)

    # ------------------------------------------------------------------
    # Customer selection
    # ------------------------------------------------------------------

    async def search_customers(self, query: str) -> ServiceCallResult:
        if self.customer_service is None:
            return ServiceCallResult(ok=True, data=[])
        return await self._call("customer search", lambda: self.customer_service.search(query))

    def select_customer(self, customer: Customer | Mapping[str, Any]) -> MutationResult:
        return self.store.set_customer(customer)

    async def create_customer(self, data: CustomerCreate | Mapping[str, Any]) -> ServiceCallResult:
        """Validate the new-customer form, create it remotely and select it."""
        if not isinstance(data, CustomerCreate):
            try:
                data = CustomerCreate.model_validate(dict(data))
            except ValidationError as exc:
                return ServiceCallResult(ok=False, issues=issues_from_validation_error(exc, "customer"))
        if self.customer_service is None:
            return ServiceCallResult(
                ok=False, issues=[ValidationIssue(field="customer", message="Customer service unavailable")]
            )

        result = await self._call("customer create", lambda: self.customer_service.create(data))
        if result.ok:
            self.store.set_customer(result.data)
        return result

    # ------------------------------------------------------------------
    # Products and measurements
    # ------------------------------------------------------------------

    async def list_fabrics(self, filter: Optional[dict[str, Any]] = None) -> ServiceCallResult:
        if self.fabric_service is None:
            return ServiceCallResult(ok=True, data=[])
        return await self._call("fabric list", lambda: self.fabric_service.list(filter))

    def measurement_plan(self) -> list[MeasurementTask]:
        """Line items that have something to measure, with their fields."""
        resolver = self.store.resolver
        plan = []
        for index, item in enumerate(self.store.draft.line_items):
            fields = resolver.fields_for(item.garment_type_code)
            if not fields:
                continue
            plan.append(
                MeasurementTask(
                    index=index,
                    garment_name=item.garment_name,
                    garment_type_code=item.garment_type_code.value,
                    fields=fields,
                    missing=resolver.missing_required(item.garment_type_code, item.measurements),
                )
            )
        return plan

    async def load_saved_measurements(self) -> ServiceCallResult:
        """Prefill empty measurement fields from the customer's saved profile.

        A customer without a profile is not an error; ``data`` is then None.
        """
        customer_id = self.store.draft.customer_id
        if not customer_id:
            return ServiceCallResult(
                ok=False, issues=[ValidationIssue(field="customer", message="Please select or create a customer")]
            )
        if self.measurement_service is None:
            return ServiceCallResult(ok=True, data=None)

        result = await self._call(
            "measurement load", lambda: self.measurement_service.get_by_customer(customer_id)
        )
        if result.ok and result.data is not None:
            result.data = self.store.apply_saved_measurements(result.data.values)
        return result

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def snapshot(self) -> WizardSnapshot:
        step = self.current_step
        totals = self.store.totals()
        return WizardSnapshot(
            state=self.state,
            step_index=self.index,
            steps=[s.key.value for s in self.steps],
            title=step.title if step else None,
            busy=self._busy,
            measurements_needed=needs_measurements(self.store.draft, self.store.resolver),
            draft=self.store.snapshot(),
            totals=totals.as_display(),
            suggested_advance=float(suggest_advance(totals.total, self.advance_percentage)),
            issues=self.validate_current(),
        )
