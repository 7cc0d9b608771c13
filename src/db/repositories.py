from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import timezone
from typing import Iterable, Iterator

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import models
from domain.gateways import DEFAULT_AVAILABLE_LIMIT, StoreError
from domain.tax import TaxDetail
from domain.vehicle import ChassisNo, Vehicle, VehicleStatus

logger = logging.getLogger(__name__)


@contextmanager
def _store_operation(session: Session, operation: str, chassis_no: str | None = None) -> Iterator[None]:
    try:
        yield
    # sqlite3 raises a bare OverflowError when an int does not fit in INTEGER.
    except (SQLAlchemyError, OverflowError) as exc:
        session.rollback()
        logger.warning("Store operation %s failed for %s: %s", operation, chassis_no or "-", exc)
        raise StoreError(f"{operation} failed: {exc}", operation=operation, chassis_no=chassis_no) from exc


class VehicleRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_many(self, vehicles: list[Vehicle]) -> list[Vehicle]:
        orm_vehicles = [
            models.VehicleOrm(
                chassis_no=vehicle.chassis_no,
                maker=vehicle.maker,
                model=vehicle.model,
                status=vehicle.status.value,
                created_at=vehicle.created_at,
                final_total=vehicle.final_total,
                overseas_total=vehicle.overseas_total,
                tax=vehicle.tax,
                clearance=vehicle.clearance,
                transport=vehicle.transport,
                local_extra1=vehicle.local_extra1,
                local_extra2=vehicle.local_extra2,
                local_extra3=vehicle.local_extra3,
                transfer_amount_foreign=vehicle.transfer_amount_foreign,
                transfer_rate=vehicle.transfer_rate,
            )
            for vehicle in vehicles
        ]
        with _store_operation(self._session, "create_vehicles"):
            self._session.add_all(orm_vehicles)
            self._session.commit()
        return vehicles

    def get(self, chassis_no: ChassisNo) -> Vehicle | None:
        with _store_operation(self._session, "get_vehicle", chassis_no):
            orm_vehicle = self._session.get(models.VehicleOrm, chassis_no)
        if orm_vehicle is None:
            return None
        return self._to_domain(orm_vehicle)

    def search(self, partial_chassis_no: str) -> list[Vehicle]:
        needle = partial_chassis_no.strip().lower()
        stmt = (
            select(models.VehicleOrm)
            .where(func.lower(models.VehicleOrm.chassis_no).contains(needle, autoescape=True))
            .order_by(models.VehicleOrm.chassis_no.asc())
        )
        with _store_operation(self._session, "search_vehicles"):
            orm_vehicles = self._session.scalars(stmt).all()
        return [self._to_domain(vehicle) for vehicle in orm_vehicles]

    def list_available(self, limit: int = DEFAULT_AVAILABLE_LIMIT) -> list[Vehicle]:
        stmt = (
            select(models.VehicleOrm)
            .where(models.VehicleOrm.status == VehicleStatus.AVAILABLE.value)
            .order_by(models.VehicleOrm.created_at.desc())
            .limit(limit)
        )
        with _store_operation(self._session, "list_available_vehicles"):
            orm_vehicles = self._session.scalars(stmt).all()
        return [self._to_domain(vehicle) for vehicle in orm_vehicles]

    @staticmethod
    def _to_domain(orm_vehicle: models.VehicleOrm) -> Vehicle:
        created_at = orm_vehicle.created_at
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)

        return Vehicle(
            chassis_no=ChassisNo(orm_vehicle.chassis_no),
            maker=orm_vehicle.maker,
            model=orm_vehicle.model,
            status=VehicleStatus(orm_vehicle.status),
            created_at=created_at,
            final_total=orm_vehicle.final_total,
            overseas_total=orm_vehicle.overseas_total,
            tax=orm_vehicle.tax,
            clearance=orm_vehicle.clearance,
            transport=orm_vehicle.transport,
            local_extra1=orm_vehicle.local_extra1,
            local_extra2=orm_vehicle.local_extra2,
            local_extra3=orm_vehicle.local_extra3,
            transfer_amount_foreign=orm_vehicle.transfer_amount_foreign,
            transfer_rate=orm_vehicle.transfer_rate,
        )


class TaxDetailRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert(self, detail: TaxDetail) -> TaxDetail:
        orm_detail = models.TaxDetailOrm(
            chassis_no=detail.chassis_no,
            total_cost=detail.total_cost,
            transfer_amount=detail.transfer_amount,
            total_cost_without_transfer=detail.total_cost_without_transfer,
            expected_profit=detail.expected_profit,
            cost_with_profit=detail.cost_with_profit,
            levy=detail.levy,
            cost_with_profit_and_levy=detail.cost_with_profit_and_levy,
            vat_to_be_paid=detail.vat_to_be_paid,
            paid_vat=detail.paid_vat,
            vat_difference=detail.vat_difference,
            sold_price=detail.sold_price,
        )
        # merge() replaces the row sharing the primary key, so a second upsert never duplicates.
        with _store_operation(self._session, "upsert_tax_detail", detail.chassis_no):
            self._session.merge(orm_detail)
            self._session.commit()
        return detail

    def get(self, chassis_no: ChassisNo) -> TaxDetail | None:
        with _store_operation(self._session, "get_tax_detail", chassis_no):
            orm_detail = self._session.get(models.TaxDetailOrm, chassis_no)
        if orm_detail is None:
            return None
        return self._to_domain(orm_detail)

    def delete(self, chassis_no: ChassisNo) -> bool:
        with _store_operation(self._session, "delete_tax_detail", chassis_no):
            orm_detail = self._session.get(models.TaxDetailOrm, chassis_no)
            if orm_detail is None:
                return False
            self._session.delete(orm_detail)
            self._session.commit()
        return True

    def find_existing(self, chassis_nos: Iterable[ChassisNo]) -> set[ChassisNo]:
        wanted = set(chassis_nos)
        if not wanted:
            return set()
        stmt = select(models.TaxDetailOrm.chassis_no).where(models.TaxDetailOrm.chassis_no.in_(wanted))
        with _store_operation(self._session, "find_tax_details"):
            found = self._session.scalars(stmt).all()
        return {ChassisNo(chassis_no) for chassis_no in found}

    def list(self) -> list[TaxDetail]:
        with _store_operation(self._session, "list_tax_details"):
            orm_details = self._session.query(models.TaxDetailOrm).order_by(models.TaxDetailOrm.chassis_no.asc()).all()
        return [self._to_domain(detail) for detail in orm_details]

    @staticmethod
    def _to_domain(orm_detail: models.TaxDetailOrm) -> TaxDetail:
        return TaxDetail(
            chassis_no=ChassisNo(orm_detail.chassis_no),
            total_cost=orm_detail.total_cost,
            transfer_amount=orm_detail.transfer_amount,
            total_cost_without_transfer=orm_detail.total_cost_without_transfer,
            expected_profit=orm_detail.expected_profit,
            cost_with_profit=orm_detail.cost_with_profit,
            levy=orm_detail.levy,
            cost_with_profit_and_levy=orm_detail.cost_with_profit_and_levy,
            vat_to_be_paid=orm_detail.vat_to_be_paid,
            paid_vat=orm_detail.paid_vat,
            vat_difference=orm_detail.vat_difference,
            sold_price=orm_detail.sold_price,
        )
