from __future__ import annotations

import math
from decimal import ROUND_FLOOR, Decimal, InvalidOperation

from pydantic import BaseModel, ConfigDict

from domain.vehicle import ChassisNo, CostBasis

LEVY_RATE = Decimal("0.0125")
VAT_RATE_NUMERATOR = 18
VAT_RATE_DENOMINATOR = 118

_HALF = Decimal("0.5")

# Derived amounts are persisted as signed 64-bit integers.
MAX_WHOLE_AMOUNT = 2**63 - 1
MAX_AMOUNT_EXPONENT = 40

AmountInput = Decimal | int | float | str | None


def round_whole(value: Decimal) -> int:
    """Round to the nearest whole currency unit, halves toward positive infinity."""
    return int((value + _HALF).to_integral_value(rounding=ROUND_FLOOR))


def parse_amount(raw: AmountInput) -> Decimal | None:
    """Turn a user-supplied amount into a Decimal; blank or non-numeric input yields None."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        return _usable(raw)
    if isinstance(raw, int):
        return _usable(Decimal(raw))
    if isinstance(raw, float):
        if not math.isfinite(raw):
            return None
        return _usable(Decimal(str(raw)))

    normalized = raw.strip().replace(",", "")
    if not normalized:
        return None
    try:
        value = Decimal(normalized)
    except InvalidOperation:
        return None
    return _usable(value)


def _usable(value: Decimal) -> Decimal | None:
    # Exponents past this would overflow the default decimal context mid-cascade.
    if not value.is_finite() or (value and value.adjusted() > MAX_AMOUNT_EXPONENT):
        return None
    return value


class TaxBreakdown(BaseModel):
    """One immutable evaluation of the tax cascade. Every field is whole local-currency units."""

    model_config = ConfigDict(frozen=True)

    cost_with_profit: int
    levy: int
    cost_with_profit_and_levy: int
    vat_to_be_paid: int
    vat_difference: int
    sold_price: int

    def within_storable_range(self) -> bool:
        return all(-MAX_WHOLE_AMOUNT - 1 <= amount <= MAX_WHOLE_AMOUNT for amount in self.model_dump().values())


def compute_tax_breakdown(
    cost_without_transfer: AmountInput,
    expected_profit: AmountInput,
    paid_vat: AmountInput = None,
) -> TaxBreakdown | None:
    """Run the cascade from cost and profit down to the sold price.

    Each stage is rounded before it feeds the next one. Returns None when cost or
    expected profit is missing or unparseable; a missing paid VAT counts as zero.
    """
    cost = parse_amount(cost_without_transfer)
    profit = parse_amount(expected_profit)
    if cost is None or profit is None:
        return None
    paid = parse_amount(paid_vat) or Decimal(0)

    cost_with_profit = round_whole(cost + profit)
    levy = round_whole(cost_with_profit * LEVY_RATE)
    cost_with_profit_and_levy = round_whole(Decimal(cost_with_profit + levy))
    vat_to_be_paid = round_whole(Decimal(cost_with_profit_and_levy * VAT_RATE_NUMERATOR) / VAT_RATE_DENOMINATOR)
    vat_difference = round_whole(Decimal(vat_to_be_paid - round_whole(paid)))
    sold_price = round_whole(Decimal(cost_with_profit_and_levy + vat_difference))

    return TaxBreakdown(
        cost_with_profit=cost_with_profit,
        levy=levy,
        cost_with_profit_and_levy=cost_with_profit_and_levy,
        vat_to_be_paid=vat_to_be_paid,
        vat_difference=vat_difference,
        sold_price=sold_price,
    )


class TaxDetail(BaseModel):
    """Persisted tax record, one per vehicle.

    ``expected_profit`` and ``paid_vat`` are stored exactly as entered; paid VAT
    is rounded only inside the cascade.
    """

    chassis_no: ChassisNo
    total_cost: Decimal
    transfer_amount: Decimal
    total_cost_without_transfer: Decimal
    expected_profit: Decimal
    cost_with_profit: int
    levy: int
    cost_with_profit_and_levy: int
    vat_to_be_paid: int
    paid_vat: Decimal = Decimal(0)
    vat_difference: int
    sold_price: int

    @classmethod
    def from_breakdown(
        cls,
        *,
        chassis_no: ChassisNo,
        cost_basis: CostBasis,
        expected_profit: Decimal,
        paid_vat: Decimal | None,
        breakdown: TaxBreakdown,
    ) -> TaxDetail:
        return cls(
            chassis_no=chassis_no,
            total_cost=cost_basis.total_cost,
            transfer_amount=cost_basis.transfer_amount,
            total_cost_without_transfer=cost_basis.total_cost_without_transfer,
            expected_profit=expected_profit,
            paid_vat=paid_vat if paid_vat is not None else Decimal(0),
            **breakdown.model_dump(),
        )

    def breakdown(self) -> TaxBreakdown:
        return TaxBreakdown(
            cost_with_profit=self.cost_with_profit,
            levy=self.levy,
            cost_with_profit_and_levy=self.cost_with_profit_and_levy,
            vat_to_be_paid=self.vat_to_be_paid,
            vat_difference=self.vat_difference,
            sold_price=self.sold_price,
        )

    def recompute(self) -> TaxBreakdown | None:
        return compute_tax_breakdown(self.total_cost_without_transfer, self.expected_profit, self.paid_vat)
