from decimal import Decimal

import pytest

from domain.invoice import SIGNATURE_LABEL, build_invoice
from domain.tax import TaxDetail, compute_tax_breakdown
from domain.vehicle import resolve_cost_basis
from tests.constants import AXIO, PREMIO
from tests.helpers.vehicles import make_vehicle


def _detail_for(vehicle_final_total: str, transfer: str | None = None) -> tuple:
    vehicle = make_vehicle(
        AXIO,
        final_total=vehicle_final_total,
        transfer_amount_foreign=transfer,
        transfer_rate="2.5" if transfer else None,
        maker="Toyota",
        model="Axio",
    )
    basis = resolve_cost_basis(vehicle)
    breakdown = compute_tax_breakdown(basis.total_cost_without_transfer, Decimal("150000"), Decimal("1000.6"))
    assert breakdown is not None
    detail = TaxDetail.from_breakdown(
        chassis_no=vehicle.chassis_no,
        cost_basis=basis,
        expected_profit=Decimal("150000"),
        paid_vat=Decimal("1000.6"),
        breakdown=breakdown,
    )
    return vehicle, detail


def test_invoice_lines_follow_print_order() -> None:
    vehicle, detail = _detail_for("1200000.40", transfer="80000")

    document = build_invoice(vehicle, detail)

    assert [line.label for line in document.lines] == [
        "Total Cost",
        "Transfer Amount",
        "Total Cost Without Transfer",
        "Expected Profit",
        "Cost with Profit",
        "Levy (1.25%)",
        "Cost with Profit + Levy",
        "VAT to be Paid (18/118)",
        "Paid VAT",
        "VAT Difference",
        "Sold Price",
    ]
    assert [line.emphasized for line in document.lines] == [False] * 10 + [True]
    assert document.heading == "Toyota Axio"
    assert document.identity_line == f"Chassis No: {AXIO}"
    assert document.title == "Tax Payment"
    assert document.signature[1] == SIGNATURE_LABEL


def test_invoice_amounts_are_whole_units() -> None:
    vehicle, detail = _detail_for("1200000.40", transfer="80000")

    amounts = {line.label: line.amount for line in build_invoice(vehicle, detail).lines}

    assert amounts["Total Cost"] == 1_200_000
    assert amounts["Transfer Amount"] == 200_000
    assert amounts["Total Cost Without Transfer"] == 1_000_000
    assert amounts["Paid VAT"] == 1001
    assert amounts["Sold Price"] == detail.sold_price
    assert all(isinstance(amount, int) for amount in amounts.values())


def test_invoice_rejects_record_of_another_vehicle() -> None:
    _, detail = _detail_for("1000000")
    other = make_vehicle(PREMIO)

    with pytest.raises(ValueError):
        build_invoice(other, detail)
