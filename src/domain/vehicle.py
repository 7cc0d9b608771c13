from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import StrEnum
from typing import NewType

from pydantic import BaseModel, ConfigDict, Field, model_validator

ChassisNo = NewType("ChassisNo", str)


class VehicleStatus(StrEnum):
    AVAILABLE = "available"
    SOLD = "sold"


class Vehicle(BaseModel):
    """Snapshot of a stocked vehicle.

    All money fields are in local currency except ``transfer_amount_foreign``,
    which is converted with ``transfer_rate``. ``overseas_total`` is the
    overseas purchase total already expressed in local currency.
    """

    chassis_no: ChassisNo
    maker: str
    model: str
    status: VehicleStatus = VehicleStatus.AVAILABLE
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    final_total: Decimal | None = None
    overseas_total: Decimal | None = None
    tax: Decimal | None = None
    clearance: Decimal | None = None
    transport: Decimal | None = None
    local_extra1: Decimal | None = None
    local_extra2: Decimal | None = None
    local_extra3: Decimal | None = None

    transfer_amount_foreign: Decimal | None = None
    transfer_rate: Decimal | None = None

    @model_validator(mode="after")
    def _validate_chassis_no(self) -> Vehicle:
        if not self.chassis_no.strip():
            raise ValueError("chassis_no must be non-empty")
        return self

    @property
    def display_name(self) -> str:
        return f"{self.maker} {self.model}"

    def local_add_ons(self) -> list[Decimal | None]:
        return [
            self.tax,
            self.clearance,
            self.transport,
            self.local_extra1,
            self.local_extra2,
            self.local_extra3,
        ]


class CostBasis(BaseModel):
    """Baseline figures that seed the tax cascade."""

    model_config = ConfigDict(frozen=True)

    total_cost: Decimal
    transfer_amount: Decimal
    total_cost_without_transfer: Decimal


def resolve_cost_basis(vehicle: Vehicle) -> CostBasis:
    # A zero final total counts as unset, same as a missing one.
    if vehicle.final_total:
        total_cost = vehicle.final_total
    else:
        total_cost = sum(
            (amount for amount in [vehicle.overseas_total, *vehicle.local_add_ons()] if amount is not None),
            start=Decimal(0),
        )

    if vehicle.transfer_amount_foreign and vehicle.transfer_rate:
        transfer_amount = vehicle.transfer_amount_foreign * vehicle.transfer_rate
    else:
        transfer_amount = Decimal(0)

    return CostBasis(
        total_cost=total_cost,
        transfer_amount=transfer_amount,
        total_cost_without_transfer=total_cost - transfer_amount,
    )
