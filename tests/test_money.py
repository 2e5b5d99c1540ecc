"""Tests for totals and payment amount checks."""

from decimal import Decimal

import pytest

from shopcore.domain.money import amounts_match, compute_totals, from_minor_units, to_minor_units


class TestTotals:
    def test_flat_tax(self):
        totals = compute_totals([(Decimal("1000.00"), 2)], tax_rate=Decimal("0.25"))
        assert totals.subtotal == Decimal("2000.00")
        assert totals.tax == Decimal("500.00")
        assert totals.discount == Decimal("0.00")
        assert totals.total == Decimal("2500.00")

    def test_tax_rounds_half_up(self):
        totals = compute_totals([(Decimal("0.10"), 1)], tax_rate=Decimal("0.25"))
        # 0.025 -> 0.03
        assert totals.tax == Decimal("0.03")
        assert totals.total == Decimal("0.13")

    def test_shipping_fee(self):
        totals = compute_totals(
            [(Decimal("99.90"), 3)], tax_rate=Decimal("0.25"), shipping_fee=Decimal("49")
        )
        assert totals.subtotal == Decimal("299.70")
        assert totals.total == totals.subtotal + totals.tax + Decimal("49.00")

    def test_empty(self):
        assert compute_totals([], tax_rate=Decimal("0.25")).total == Decimal("0.00")


class TestAmountsMatch:
    @pytest.mark.parametrize("actual", ["2500.00", "2500.009", "2500.01", "2499.99"])
    def test_accepted(self, actual):
        assert amounts_match(Decimal("2500.00"), Decimal(actual))

    @pytest.mark.parametrize("actual", ["2499", "2501", "2500.02"])
    def test_rejected(self, actual):
        assert not amounts_match(Decimal("2500.00"), Decimal(actual))


class TestMinorUnits:
    def test_to_minor(self):
        assert to_minor_units(Decimal("2500.00")) == 250000
        assert to_minor_units(Decimal("19.995")) == 2000

    def test_from_minor(self):
        assert from_minor_units(250000) == Decimal("2500.00")
        assert from_minor_units(1) == Decimal("0.01")
