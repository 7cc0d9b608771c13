from decimal import Decimal
from random import Random

import pytest

from domain.tax import TaxBreakdown, compute_tax_breakdown, parse_amount, round_whole


def test_cascade_without_paid_vat() -> None:
    breakdown = compute_tax_breakdown(Decimal("1000000"), Decimal("150000"), Decimal("0"))

    assert breakdown == TaxBreakdown(
        cost_with_profit=1_150_000,
        levy=14_375,
        cost_with_profit_and_levy=1_164_375,
        vat_to_be_paid=177_617,
        vat_difference=177_617,
        sold_price=1_341_992,
    )


def test_cascade_with_vat_fully_paid() -> None:
    breakdown = compute_tax_breakdown(Decimal("1000000"), Decimal("150000"), Decimal("177617"))

    assert breakdown is not None
    assert breakdown.vat_difference == 0
    assert breakdown.sold_price == 1_164_375


def test_vat_uses_rounded_cost_with_levy() -> None:
    # 2120 * 1.25% = 26.5 rounds up to 27, so the VAT base is 2147 rather than 2146.5.
    breakdown = compute_tax_breakdown(Decimal("2000"), Decimal("120"))

    assert breakdown is not None
    assert breakdown.levy == 27
    assert breakdown.cost_with_profit_and_levy == 2147
    assert breakdown.vat_to_be_paid == 328
    assert round_whole(Decimal("2146.5") * 18 / 118) == 327
    assert breakdown.sold_price == 2475


def test_paid_vat_is_rounded_inside_cascade() -> None:
    breakdown = compute_tax_breakdown(Decimal("2000"), Decimal("120"), Decimal("100.5"))

    assert breakdown is not None
    assert breakdown.vat_difference == 328 - 101
    assert breakdown.sold_price == 2147 + 227


def test_negative_profit_is_not_clamped() -> None:
    breakdown = compute_tax_breakdown(Decimal("1000"), Decimal("-200"))

    assert breakdown == TaxBreakdown(
        cost_with_profit=800,
        levy=10,
        cost_with_profit_and_levy=810,
        vat_to_be_paid=124,
        vat_difference=124,
        sold_price=934,
    )


@pytest.mark.parametrize(
    ("cost", "profit"),
    [
        (None, "150000"),
        ("1000000", None),
        ("1000000", ""),
        ("1000000", "abc"),
        ("", "150000"),
        ("1000000", "nan"),
    ],
)
def test_missing_required_input_yields_no_result(cost: str | None, profit: str | None) -> None:
    assert compute_tax_breakdown(cost, profit, "10") is None


@pytest.mark.parametrize("paid_vat", [None, "", "n/a", float("nan")])
def test_unusable_paid_vat_counts_as_zero(paid_vat: str | float | None) -> None:
    with_zero = compute_tax_breakdown("1000000", "150000", "0")

    assert compute_tax_breakdown("1000000", "150000", paid_vat) == with_zero


def test_accepts_text_and_numbers_alike() -> None:
    from_text = compute_tax_breakdown("1,000,000", " 150000 ", "500")
    from_numbers = compute_tax_breakdown(1_000_000, 150_000.0, Decimal("500"))

    assert from_text == from_numbers


def test_fractional_cost_rounds_at_first_stage() -> None:
    down = compute_tax_breakdown(Decimal("1000.4"), Decimal("0"))
    up = compute_tax_breakdown(Decimal("1000.5"), Decimal("0"))

    assert down is not None and up is not None
    assert down.cost_with_profit == 1000
    assert up.cost_with_profit == 1001


def test_every_field_is_whole_and_recomputation_is_identical() -> None:
    rng = Random(11)
    for _ in range(200):
        cost = Decimal(rng.randint(0, 30_000_000)) + Decimal(rng.randint(0, 99)) / 100
        profit = Decimal(rng.randint(-500_000, 2_000_000)) + Decimal(rng.randint(0, 99)) / 100
        paid = Decimal(rng.randint(0, 500_000)) + Decimal(rng.randint(0, 99)) / 100

        first = compute_tax_breakdown(cost, profit, paid)
        second = compute_tax_breakdown(cost, profit, paid)

        assert first is not None
        assert first.model_dump_json() == second.model_dump_json()  # type: ignore[union-attr]
        assert all(isinstance(value, int) for value in first.model_dump().values())
        assert first.cost_with_profit_and_levy == first.cost_with_profit + first.levy
        assert first.sold_price == first.cost_with_profit_and_levy + first.vat_difference


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2.5", 3),
        ("2.4999", 2),
        ("-2.5", -2),
        ("-2.6", -3),
        ("0", 0),
        ("14375", 14375),
    ],
)
def test_round_whole_sends_halves_up(value: str, expected: int) -> None:
    assert round_whole(Decimal(value)) == expected


def test_parse_amount() -> None:
    assert parse_amount("  ") is None
    assert parse_amount("12abc") is None
    assert parse_amount("inf") is None
    assert parse_amount(True) is None
    assert parse_amount("1,250.75") == Decimal("1250.75")
    assert parse_amount(0.1) == Decimal("0.1")
    assert parse_amount(-5) == Decimal(-5)


def test_storable_range_covers_signed_64_bit() -> None:
    fits = compute_tax_breakdown(Decimal("1000000"), Decimal("150000"))
    too_large = compute_tax_breakdown(Decimal("1000000"), Decimal("1e20"))

    assert fits is not None and fits.within_storable_range()
    assert too_large is not None and not too_large.within_storable_range()


def test_parse_amount_rejects_unworkable_magnitudes() -> None:
    assert parse_amount("1e20") == Decimal("1e20")
    assert parse_amount("1e1000000") is None
    assert parse_amount(Decimal("-1e50")) is None
    assert compute_tax_breakdown("1000", "1e1000000") is None
