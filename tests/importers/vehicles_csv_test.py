from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

from domain.vehicle import VehicleStatus
from importers.vehicles_csv import load_vehicles
from tests.constants import AXIO, PREMIO


def _write(tmp_path: Path, content: str) -> Path:
    csv_path = tmp_path / "vehicles.csv"
    csv_path.write_text(content)
    return csv_path


def test_load_vehicles_parses_rows(tmp_path: Path) -> None:
    csv_path = _write(
        tmp_path,
        "chassis_no,maker,model,status,created_at,final_total,overseas_total,tax,transfer_amount_foreign,transfer_rate\n"
        f"{AXIO},Toyota,Axio,available,2025-03-01T09:00:00Z,,1800000,400000,200000,2.35\n"
        f" {PREMIO} ,Toyota,Premio,SOLD,2025-02-01T10:30:00+05:30,2500000,,,,\n",
    )

    vehicles = load_vehicles(csv_path)

    assert [vehicle.chassis_no for vehicle in vehicles] == [AXIO, PREMIO]
    axio, premio = vehicles
    assert axio.final_total is None
    assert axio.overseas_total == Decimal("1800000")
    assert axio.transfer_rate == Decimal("2.35")
    assert axio.created_at == datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
    assert premio.status is VehicleStatus.SOLD
    assert premio.final_total == Decimal("2500000")
    assert premio.created_at == datetime(2025, 2, 1, 5, 0, tzinfo=timezone.utc)


def test_optional_columns_default(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, f"chassis_no,maker,model\n{AXIO},Toyota,Axio\n")

    (vehicle,) = load_vehicles(csv_path)

    assert vehicle.status is VehicleStatus.AVAILABLE
    assert vehicle.final_total is None
    assert vehicle.created_at.tzinfo is not None


def test_missing_file_yields_no_vehicles(tmp_path: Path) -> None:
    assert load_vehicles(tmp_path / "absent.csv") == []


def test_missing_required_column(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, f"chassis_no,maker\n{AXIO},Toyota\n")

    with pytest.raises(ValueError, match="model"):
        load_vehicles(csv_path)


def test_empty_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="missing headers"):
        load_vehicles(_write(tmp_path, ""))


def test_bad_amount_names_line_and_column(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, f"chassis_no,maker,model,tax\n{AXIO},Toyota,Axio,12k\n")

    with pytest.raises(ValueError, match="Line 2: tax"):
        load_vehicles(csv_path)
