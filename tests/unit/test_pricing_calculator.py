from decimal import Decimal

from storefront.pricing.calculator import (
    KIND_ADDON,
    LineItem,
    compute_total,
    effective_price,
    price_breakdown,
)


def _scenario_a_lines():
    return [
        LineItem("Case: Steel", "case", Decimal("500"), Decimal("10")),
        LineItem("Dial: Blue", "dial", Decimal("200")),
        LineItem("Spare strap", "case", Decimal("50"), kind=KIND_ADDON),
    ]


def test_scenario_a_total_applies_line_then_global_discount():
    breakdown = price_breakdown(_scenario_a_lines(), Decimal("5"))
    assert breakdown.subtotal == Decimal("700.00")
    assert breakdown.discount_amount == Decimal("35.00")
    assert breakdown.total == Decimal("665.00")


def test_compute_total_matches_breakdown():
    assert compute_total(_scenario_a_lines(), 5) == Decimal("665.00")


def test_addon_ignores_discount_percent():
    addon = LineItem("Spare strap", "case", Decimal("50"), Decimal("50"), kind=KIND_ADDON)
    assert addon.effective_price == Decimal("50")


def test_negative_price_counts_as_zero():
    assert effective_price(Decimal("-20"), Decimal("0")) == Decimal("0")
    assert compute_total([LineItem("Broken", "case", Decimal("-20"))]) == Decimal("0.00")


def test_discount_is_clamped_to_valid_range():
    assert effective_price(Decimal("100"), Decimal("150")) == Decimal("0")
    assert effective_price(Decimal("100"), Decimal("-10")) == Decimal("100")
    assert compute_total(_scenario_a_lines(), Decimal("120")) == Decimal("0.00")


def test_rounding_is_half_up_on_final_total():
    lines = [LineItem("A", "a", Decimal("0.125"))]
    assert compute_total(lines) == Decimal("0.13")


def test_rounding_happens_once():
    # 3 x 0.333 avec 0% => 0.999 => 1.00 (et non 3 x 0.33)
    lines = [LineItem(f"L{i}", "a", Decimal("0.333")) for i in range(3)]
    assert compute_total(lines) == Decimal("1.00")


def test_empty_lines_total_zero():
    assert compute_total([], Decimal("5")) == Decimal("0.00")
