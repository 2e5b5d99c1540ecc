"""Tests for the order number allocator."""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal

from shopcore.data.models.order import OrderModel
from shopcore.data.models.sequence_counter import SequenceCounterModel
from shopcore.services.sequence_service import SequenceService


def _order(number):
    return OrderModel(
        order_number=number,
        customer_name="A",
        customer_email="a@example.com",
        customer_phone="12345",
        shipping_street="s",
        shipping_city="c",
        shipping_postal_code="0001",
        shipping_country="Norway",
        subtotal=Decimal("1"),
        total=Decimal("1.25"),
        tax=Decimal("0.25"),
    )


class TestNextSequence:
    def test_first_use_creates_counter(self, db):
        svc = SequenceService(db)
        assert svc.next_sequence() == 1
        assert svc.next_sequence() == 2
        assert db.get(SequenceCounterModel, "orderId").value == 2

    def test_named_counters_are_independent(self, db):
        svc = SequenceService(db)
        svc.next_sequence("a")
        svc.next_sequence("a")
        assert svc.next_sequence("b") == 1

    def test_order_number_format(self, db):
        svc = SequenceService(db, prefix="alx")
        number = svc.next_order_number(datetime(2025, 3, 1, tzinfo=timezone.utc))
        assert number == "ALX-2025-0001"

    def test_concurrent_allocations_are_unique(self, session_factory):
        seed = session_factory()
        seed.add(SequenceCounterModel(name="orderId", value=0))
        seed.commit()
        seed.close()

        def allocate(_):
            session = session_factory()
            try:
                return SequenceService(session).next_sequence()
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            values = list(pool.map(allocate, range(50)))

        assert len(set(values)) == 50
        assert sorted(values) == list(range(1, 51))


class TestSyncCounter:
    def test_sync_to_max_existing(self, db):
        for number in ["ALX-2025-0003", "ALX-2025-0041", "ALX-2024-0007", "LEGACY-1"]:
            db.add(_order(number))
        db.commit()

        svc = SequenceService(db)
        assert svc.sync_counter() == 41
        assert svc.next_sequence() == 42

    def test_sync_without_orders(self, db):
        svc = SequenceService(db)
        svc.next_sequence()
        svc.next_sequence()
        assert svc.sync_counter() == 0
        assert svc.next_sequence() == 1
