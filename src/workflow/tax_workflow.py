from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum
from typing import Iterator

from domain.gateways import (
    DEFAULT_AVAILABLE_LIMIT,
    InvoiceRenderer,
    StoreError,
    TaxDetailStore,
    VehicleSearchGateway,
)
from domain.invoice import build_invoice
from domain.tax import AmountInput, TaxBreakdown, TaxDetail, compute_tax_breakdown, parse_amount
from domain.vehicle import ChassisNo, CostBasis, Vehicle, resolve_cost_basis

logger = logging.getLogger(__name__)


class WorkflowState(StrEnum):
    IDLE = "IDLE"
    SELECTED = "SELECTED"
    COMPUTED = "COMPUTED"
    SAVED = "SAVED"


class InputField(StrEnum):
    EXPECTED_PROFIT = "expected_profit"
    PAID_VAT = "paid_vat"


class TaxWorkflowError(Exception):
    pass


class InvalidInputError(TaxWorkflowError):
    pass


class InvalidTransitionError(TaxWorkflowError):
    def __init__(self, action: str, state: WorkflowState) -> None:
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while workflow is {state}")


class TaxDetailNotFoundError(TaxWorkflowError):
    def __init__(self, message: str, *, chassis_no: str | None = None) -> None:
        super().__init__(message)
        self.chassis_no = chassis_no


class VehicleNotFoundError(TaxWorkflowError):
    def __init__(self, chassis_no: str) -> None:
        super().__init__(f"No vehicle with chassis number {chassis_no}")
        self.chassis_no = chassis_no


class OperationInProgressError(TaxWorkflowError):
    pass


@dataclass(frozen=True)
class SearchResult:
    vehicle: Vehicle
    has_tax_detail: bool


@dataclass(frozen=True)
class _CandidateQuery:
    available_only: bool
    text: str = ""


class TaxWorkflowController:
    """Drives one user's tax session: search, select, edit, save, delete, print.

    States move IDLE -> SELECTED -> COMPUTED -> SAVED. Every input edit reruns the
    whole cascade; printing is only possible while the saved record matches the
    breakdown on screen.
    """

    def __init__(
        self,
        *,
        vehicles: VehicleSearchGateway,
        tax_details: TaxDetailStore,
        renderer: InvoiceRenderer | None = None,
        available_limit: int = DEFAULT_AVAILABLE_LIMIT,
    ) -> None:
        self._vehicles = vehicles
        self._tax_details = tax_details
        self._renderer = renderer
        self._available_limit = available_limit

        self._state = WorkflowState.IDLE
        self._candidates: list[SearchResult] = []
        self._last_query: _CandidateQuery | None = None

        self._vehicle: Vehicle | None = None
        self._cost_basis: CostBasis | None = None
        self._expected_profit: Decimal | None = None
        self._paid_vat: Decimal | None = None
        self._breakdown: TaxBreakdown | None = None
        self._record: TaxDetail | None = None

        self._generation = 0
        self._write_lock = threading.Lock()

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def candidates(self) -> list[SearchResult]:
        return list(self._candidates)

    @property
    def vehicle(self) -> Vehicle | None:
        return self._vehicle

    @property
    def cost_basis(self) -> CostBasis | None:
        return self._cost_basis

    @property
    def expected_profit(self) -> Decimal | None:
        return self._expected_profit

    @property
    def paid_vat(self) -> Decimal | None:
        return self._paid_vat

    @property
    def breakdown(self) -> TaxBreakdown | None:
        """Last computed breakdown; may be stale while the state is SELECTED."""
        return self._breakdown

    @property
    def record(self) -> TaxDetail | None:
        """Stored tax detail for the selected vehicle, if one has been loaded or saved."""
        return self._record

    def search(self, query: str) -> list[SearchResult]:
        text = query.strip()
        if not text:
            raise InvalidInputError("Please enter a chassis number")
        results = self._run_query(_CandidateQuery(available_only=False, text=text))
        self._clear_selection()
        return results

    def list_available(self) -> list[SearchResult]:
        results = self._run_query(_CandidateQuery(available_only=True))
        self._clear_selection()
        return results

    def select(self, vehicle: Vehicle) -> WorkflowState:
        self._generation += 1
        generation = self._generation

        cost_basis = resolve_cost_basis(vehicle)
        existing = self._tax_details.get(vehicle.chassis_no)
        if generation != self._generation:
            logger.info("Selection moved on while loading %s; ignoring result", vehicle.chassis_no)
            return self._state

        self._vehicle = vehicle
        self._cost_basis = cost_basis
        self._record = existing
        if existing is not None:
            self._expected_profit = existing.expected_profit
            self._paid_vat = existing.paid_vat
        else:
            self._expected_profit = None
            self._paid_vat = None
        self._breakdown = None
        self._state = WorkflowState.SELECTED
        self._recompute()

        logger.info(
            "Selected %s (%s), existing tax detail: %s",
            vehicle.chassis_no,
            vehicle.display_name,
            "yes" if existing is not None else "no",
        )
        return self._state

    def select_chassis(self, chassis_no: str) -> WorkflowState:
        vehicle = self._vehicles.get(ChassisNo(chassis_no.strip()))
        if vehicle is None:
            raise VehicleNotFoundError(chassis_no)
        return self.select(vehicle)

    def edit_input(self, field: InputField | str, value: AmountInput) -> TaxBreakdown | None:
        if self._state is WorkflowState.IDLE:
            raise InvalidTransitionError("edit inputs", self._state)
        try:
            input_field = InputField(field)
        except ValueError as exc:
            raise InvalidInputError(f"Unknown input field: {field}") from exc

        amount = parse_amount(value)
        if input_field is InputField.EXPECTED_PROFIT:
            self._expected_profit = amount
        else:
            self._paid_vat = amount

        self._recompute()
        return self._breakdown if self._state is WorkflowState.COMPUTED else None

    def save(self) -> TaxDetail:
        if self._state is WorkflowState.IDLE:
            raise InvalidTransitionError("save", self._state)
        if (
            self._state is WorkflowState.SELECTED
            or self._vehicle is None
            or self._cost_basis is None
            or self._expected_profit is None
            or self._breakdown is None
        ):
            raise InvalidInputError("Please fill in all required fields")
        if not self._breakdown.within_storable_range():
            raise InvalidInputError("Amounts are too large to store")

        detail = TaxDetail.from_breakdown(
            chassis_no=self._vehicle.chassis_no,
            cost_basis=self._cost_basis,
            expected_profit=self._expected_profit,
            paid_vat=self._paid_vat,
            breakdown=self._breakdown,
        )

        with self._exclusive("save"):
            generation = self._generation
            try:
                self._tax_details.upsert(detail)
            except StoreError:
                logger.error("Saving tax detail for %s failed", detail.chassis_no)
                raise
            if generation != self._generation:
                logger.info("Selection moved on while saving %s; session left unchanged", detail.chassis_no)
                return detail

            self._record = detail
            self._state = WorkflowState.SAVED
            self._refresh_candidates()

        logger.info("Saved tax detail for %s, sold price %d", detail.chassis_no, detail.sold_price)
        return detail

    def confirm_record(self) -> TaxDetail:
        """Accept the loaded record as current without writing it.

        Only allowed while the record still matches the cost basis and breakdown on
        screen; a stale record has to be saved explicitly.
        """
        if self._record is None or self._vehicle is None or self._cost_basis is None:
            raise TaxDetailNotFoundError("No saved tax detail for the selected vehicle")
        if self._state is WorkflowState.SAVED:
            return self._record
        if self._state is not WorkflowState.COMPUTED or not self._record_is_current(self._record):
            raise InvalidTransitionError("confirm a stale tax detail without saving it", self._state)

        self._state = WorkflowState.SAVED
        return self._record

    def delete_record(self) -> bool:
        """Remove the saved record for the selected vehicle. The vehicle itself is untouched."""
        if self._record is None or self._vehicle is None:
            raise TaxDetailNotFoundError("No saved tax detail for the selected vehicle")
        if self._state is not WorkflowState.SAVED:
            raise InvalidTransitionError("delete tax detail", self._state)

        chassis_no = self._vehicle.chassis_no
        with self._exclusive("delete"):
            generation = self._generation
            try:
                deleted = self._tax_details.delete(chassis_no)
            except StoreError:
                logger.error("Deleting tax detail for %s failed", chassis_no)
                raise
            if generation != self._generation:
                logger.info("Selection moved on while deleting %s; session left unchanged", chassis_no)
                return deleted

            self._record = None
            self._state = WorkflowState.COMPUTED
            self._refresh_candidates()

        if deleted:
            logger.info("Deleted tax detail for %s", chassis_no)
        else:
            logger.warning("Tax detail for %s was already gone from the store", chassis_no)
        return deleted

    def render_invoice(self) -> bytes:
        if self._record is None or self._vehicle is None:
            raise TaxDetailNotFoundError("Please save tax details before printing")
        if self._state is not WorkflowState.SAVED or not self._record_is_current(self._record):
            raise InvalidTransitionError("print invoice", self._state)
        if self._renderer is None:
            raise TaxWorkflowError("No invoice renderer configured")

        document = build_invoice(self._vehicle, self._record)
        return self._renderer.render(document)

    def _record_is_current(self, record: TaxDetail) -> bool:
        basis = self._cost_basis
        return (
            basis is not None
            and record.breakdown() == self._breakdown
            and record.total_cost == basis.total_cost
            and record.transfer_amount == basis.transfer_amount
            and record.total_cost_without_transfer == basis.total_cost_without_transfer
        )

    def _recompute(self) -> None:
        if self._cost_basis is None:
            return
        breakdown = compute_tax_breakdown(
            self._cost_basis.total_cost_without_transfer,
            self._expected_profit,
            self._paid_vat,
        )
        if breakdown is None:
            # The last breakdown stays on display but can no longer be saved.
            self._state = WorkflowState.SELECTED
            return
        self._breakdown = breakdown
        self._state = WorkflowState.COMPUTED

    def _run_query(self, query: _CandidateQuery) -> list[SearchResult]:
        if query.available_only:
            vehicles = self._vehicles.list_available(self._available_limit)
        else:
            vehicles = self._vehicles.search(query.text)
        existing = self._tax_details.find_existing(vehicle.chassis_no for vehicle in vehicles)

        results = [SearchResult(vehicle=vehicle, has_tax_detail=vehicle.chassis_no in existing) for vehicle in vehicles]
        self._candidates = results
        self._last_query = query
        return results

    def _refresh_candidates(self) -> None:
        if self._last_query is None:
            return
        try:
            self._run_query(self._last_query)
        except StoreError as exc:
            logger.warning("Could not refresh vehicle list after write: %s", exc)

    def _clear_selection(self) -> None:
        self._generation += 1
        self._vehicle = None
        self._cost_basis = None
        self._expected_profit = None
        self._paid_vat = None
        self._breakdown = None
        self._record = None
        self._state = WorkflowState.IDLE

    @contextmanager
    def _exclusive(self, action: str) -> Iterator[None]:
        if not self._write_lock.acquire(blocking=False):
            raise OperationInProgressError(f"Cannot {action} while another save or delete is in progress")
        try:
            yield
        finally:
            self._write_lock.release()
