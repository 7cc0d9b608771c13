from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol

from domain.tax import TaxDetail
from domain.vehicle import ChassisNo, Vehicle

if TYPE_CHECKING:
    from domain.invoice import InvoiceDocument


DEFAULT_AVAILABLE_LIMIT = 50


class StoreError(RuntimeError):
    """A search, read or write against the backing store failed."""

    def __init__(self, message: str, *, operation: str, chassis_no: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.chassis_no = chassis_no


class VehicleSearchGateway(Protocol):
    def search(self, partial_chassis_no: str) -> list[Vehicle]: ...

    def list_available(self, limit: int = DEFAULT_AVAILABLE_LIMIT) -> list[Vehicle]: ...

    def get(self, chassis_no: ChassisNo) -> Vehicle | None: ...


class TaxDetailStore(Protocol):
    """One tax record per vehicle, keyed by chassis number."""

    def upsert(self, detail: TaxDetail) -> TaxDetail: ...

    def get(self, chassis_no: ChassisNo) -> TaxDetail | None: ...

    def delete(self, chassis_no: ChassisNo) -> bool: ...

    def find_existing(self, chassis_nos: Iterable[ChassisNo]) -> set[ChassisNo]: ...


class InvoiceRenderer(Protocol):
    def render(self, document: InvoiceDocument) -> bytes: ...
