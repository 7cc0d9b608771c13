from __future__ import annotations

from dataclasses import dataclass, field

from domain.tax import TaxDetail, round_whole
from domain.vehicle import Vehicle

INVOICE_TITLE = "Tax Payment"
SIGNATURE_RULE = ".............................."
SIGNATURE_LABEL = "Authorized Signature"


@dataclass(frozen=True)
class InvoiceLine:
    label: str
    amount: int
    emphasized: bool = False


@dataclass(frozen=True)
class InvoiceDocument:
    heading: str
    chassis_no: str
    lines: list[InvoiceLine]
    title: str = INVOICE_TITLE
    signature: tuple[str, str] = field(default=(SIGNATURE_RULE, SIGNATURE_LABEL))

    @property
    def identity_line(self) -> str:
        return f"Chassis No: {self.chassis_no}"


def build_invoice_lines(detail: TaxDetail) -> list[InvoiceLine]:
    """Label/amount lines in print order; the sold price closes the list."""
    return [
        InvoiceLine("Total Cost", round_whole(detail.total_cost)),
        InvoiceLine("Transfer Amount", round_whole(detail.transfer_amount)),
        InvoiceLine("Total Cost Without Transfer", round_whole(detail.total_cost_without_transfer)),
        InvoiceLine("Expected Profit", round_whole(detail.expected_profit)),
        InvoiceLine("Cost with Profit", detail.cost_with_profit),
        InvoiceLine("Levy (1.25%)", detail.levy),
        InvoiceLine("Cost with Profit + Levy", detail.cost_with_profit_and_levy),
        InvoiceLine("VAT to be Paid (18/118)", detail.vat_to_be_paid),
        InvoiceLine("Paid VAT", round_whole(detail.paid_vat)),
        InvoiceLine("VAT Difference", detail.vat_difference),
        InvoiceLine("Sold Price", detail.sold_price, emphasized=True),
    ]


def build_invoice(vehicle: Vehicle, detail: TaxDetail) -> InvoiceDocument:
    if vehicle.chassis_no != detail.chassis_no:
        msg = f"Tax detail for {detail.chassis_no} does not belong to vehicle {vehicle.chassis_no}"
        raise ValueError(msg)
    return InvoiceDocument(
        heading=vehicle.display_name,
        chassis_no=vehicle.chassis_no,
        lines=build_invoice_lines(detail),
    )
