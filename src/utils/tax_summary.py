from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable

from domain.invoice import InvoiceLine, build_invoice_lines
from domain.tax import TaxBreakdown, TaxDetail, round_whole
from domain.vehicle import CostBasis

from .formatting import format_decimal, format_whole_units

if TYPE_CHECKING:
    from workflow.tax_workflow import SearchResult


def render_search_results(results: Iterable[SearchResult]) -> None:
    rows = [
        (
            result.vehicle.chassis_no,
            result.vehicle.display_name,
            result.vehicle.status.value,
            "yes" if result.has_tax_detail else "",
        )
        for result in results
    ]
    print("Vehicles:")
    if not rows:
        print("  (none)")
        return

    headers = ("Chassis", "Vehicle", "Status", "Tax invoice")
    widths = [max(len(header), max(len(row[i]) for row in rows)) for i, header in enumerate(headers)]
    header = " ".join(f"{title:<{width}}" for title, width in zip(headers, widths))
    lines = [header, "-" * len(header)]
    for row in rows:
        lines.append(" ".join(f"{cell:<{width}}" for cell, width in zip(row, widths)))
    print("\n".join(lines))


def render_breakdown(
    cost_basis: CostBasis,
    breakdown: TaxBreakdown | None,
    *,
    expected_profit: Decimal | None,
    paid_vat: Decimal | None,
) -> None:
    print(f"Total cost:                  {format_decimal(cost_basis.total_cost)}")
    print(f"Transfer amount:             {format_decimal(cost_basis.transfer_amount)}")
    print(f"Total cost without transfer: {format_decimal(cost_basis.total_cost_without_transfer)}")
    print(f"Expected profit:             {format_decimal(expected_profit) if expected_profit is not None else '-'}")
    print(f"Paid VAT:                    {format_decimal(paid_vat) if paid_vat is not None else '-'}")
    if breakdown is None:
        print("  (enter an expected profit to calculate)")
        return
    _print_lines(
        [
            InvoiceLine("Cost with Profit", breakdown.cost_with_profit),
            InvoiceLine("Levy (1.25%)", breakdown.levy),
            InvoiceLine("Cost with Profit + Levy", breakdown.cost_with_profit_and_levy),
            InvoiceLine("VAT to be Paid (18/118)", breakdown.vat_to_be_paid),
            InvoiceLine("Paid VAT (rounded)", round_whole(paid_vat or Decimal(0))),
            InvoiceLine("VAT Difference", breakdown.vat_difference),
            InvoiceLine("Sold Price", breakdown.sold_price, emphasized=True),
        ]
    )


def render_tax_detail(detail: TaxDetail) -> None:
    print(f"Tax detail for {detail.chassis_no}:")
    _print_lines(build_invoice_lines(detail))


def _print_lines(lines: list[InvoiceLine]) -> None:
    label_width = max(len(line.label) for line in lines)
    value_texts = [format_whole_units(line.amount) for line in lines]
    value_width = max(len(text) for text in value_texts)
    for line, text in zip(lines, value_texts):
        if line.emphasized:
            print("-" * (label_width + value_width + 3))
        print(f"{line.label:<{label_width}} : {text:>{value_width}}")
