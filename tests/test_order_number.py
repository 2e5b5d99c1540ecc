"""Tests for order number formatting and parsing."""

from shopcore.domain.order_number import format_order_number, parse_order_number


class TestFormat:
    def test_zero_padded(self):
        assert format_order_number("ALX", 2025, 7) == "ALX-2025-0007"

    def test_widens_past_width(self):
        assert format_order_number("ALX", 2025, 12345) == "ALX-2025-12345"

    def test_custom_width(self):
        assert format_order_number("ALX", 2026, 42, width=6) == "ALX-2026-000042"


class TestParse:
    def test_parse(self):
        parsed = parse_order_number("ALX-2025-0042")
        assert parsed.prefix == "ALX"
        assert parsed.year == 2025
        assert parsed.sequence == 42

    def test_parse_wide_sequence(self):
        assert parse_order_number("ALX-2025-10001").sequence == 10001

    def test_format_parse_agree(self):
        parsed = parse_order_number(format_order_number("ALX", 2024, 9))
        assert (parsed.year, parsed.sequence) == (2024, 9)

    def test_garbage(self):
        assert parse_order_number("ORDER-1") is None
        assert parse_order_number("ALX-25-0001") is None
        assert parse_order_number("") is None
