from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class VehicleOrm(Base):
    __tablename__ = "vehicles"

    chassis_no: Mapped[str] = mapped_column(String, primary_key=True)
    maker: Mapped[str] = mapped_column(String, nullable=False)
    model: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    final_total: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    overseas_total: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    tax: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    clearance: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    transport: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    local_extra1: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    local_extra2: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    local_extra3: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    transfer_amount_foreign: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)
    transfer_rate: Mapped[Decimal | None] = mapped_column(DecimalAsString, nullable=True)


class TaxDetailOrm(Base):
    __tablename__ = "tax_details"

    # Primary key on the vehicle identity keeps it one record per vehicle.
    chassis_no: Mapped[str] = mapped_column(String, ForeignKey("vehicles.chassis_no"), primary_key=True)
    total_cost: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    transfer_amount: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    total_cost_without_transfer: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    expected_profit: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    cost_with_profit: Mapped[int] = mapped_column(Integer, nullable=False)
    levy: Mapped[int] = mapped_column(Integer, nullable=False)
    cost_with_profit_and_levy: Mapped[int] = mapped_column(Integer, nullable=False)
    vat_to_be_paid: Mapped[int] = mapped_column(Integer, nullable=False)
    paid_vat: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False, default=Decimal("0"))
    vat_difference: Mapped[int] = mapped_column(Integer, nullable=False)
    sold_price: Mapped[int] = mapped_column(Integer, nullable=False)
