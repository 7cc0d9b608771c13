from __future__ import annotations

import csv
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path

from domain.vehicle import ChassisNo, Vehicle, VehicleStatus

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"chassis_no", "maker", "model"}
MONEY_COLUMNS = (
    "final_total",
    "overseas_total",
    "tax",
    "clearance",
    "transport",
    "local_extra1",
    "local_extra2",
    "local_extra3",
    "transfer_amount_foreign",
    "transfer_rate",
)


def load_vehicles(csv_path: Path) -> list[Vehicle]:
    """Load vehicle snapshots from a CSV export.

    Each row must contain: chassis_no,maker,model. Optional columns are status,
    created_at and the money columns in MONEY_COLUMNS; blank cells mean absent.
    """

    if not csv_path.exists():
        return []

    with csv_path.open(newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"Vehicle CSV {csv_path} is empty or missing headers")

        missing = REQUIRED_COLUMNS - set(reader.fieldnames)
        if missing:
            raise ValueError(f"Vehicle CSV {csv_path} missing required columns: {', '.join(sorted(missing))}")

        vehicles: list[Vehicle] = []
        for line_no, row in enumerate(reader, start=2):
            money = {column: _parse_money(row.get(column), column=column, line_no=line_no) for column in MONEY_COLUMNS}
            vehicles.append(
                Vehicle(
                    chassis_no=ChassisNo(row["chassis_no"].strip()),
                    maker=row["maker"].strip(),
                    model=row["model"].strip(),
                    status=_parse_status(row.get("status")),
                    created_at=_parse_timestamp(row.get("created_at")),
                    **money,
                )
            )

    logger.info("Loaded %d vehicles from %s", len(vehicles), csv_path)
    return vehicles


def _parse_money(raw: str | None, *, column: str, line_no: int) -> Decimal | None:
    if raw is None:
        return None
    normalized = raw.strip()
    if not normalized:
        return None
    try:
        return Decimal(normalized)
    except InvalidOperation as exc:
        raise ValueError(f"Line {line_no}: {column} is not a number: {raw!r}") from exc


def _parse_status(raw: str | None) -> VehicleStatus:
    if raw is None or not raw.strip():
        return VehicleStatus.AVAILABLE
    return VehicleStatus(raw.strip().lower())


def _parse_timestamp(raw: str | None) -> datetime:
    if raw is None or not raw.strip():
        return datetime.now(timezone.utc)
    normalized = raw.strip()
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    ts = datetime.fromisoformat(normalized)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)
