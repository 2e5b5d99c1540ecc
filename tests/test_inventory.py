"""Tests for stock reservation and release."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from shopcore.data.models.product import ProductModel
from shopcore.domain.errors import OutOfStock, ProductNotFound
from shopcore.services.inventory_service import InventoryService, StockLine


def _stock(db, product_id):
    return db.get(ProductModel, product_id, populate_existing=True).stock


class TestReserve:
    def test_reserve_decrements_and_counts_sales(self, db, make_product):
        product = make_product(stock=5)
        InventoryService(db).reserve([StockLine(product.id, 2)])

        fresh = db.get(ProductModel, product.id, populate_existing=True)
        assert fresh.stock == 3
        assert fresh.sales_count == 2

    def test_insufficient_stock_reports_available(self, db, make_product):
        product = make_product(stock=1)
        with pytest.raises(OutOfStock) as exc:
            InventoryService(db).reserve([StockLine(product.id, 2)])

        assert exc.value.details["available"] == 1
        assert exc.value.details["requested"] == 2
        assert _stock(db, product.id) == 1

    def test_failure_restores_earlier_lines(self, db, make_product):
        first = make_product(stock=5, sku="A")
        second = make_product(stock=1, sku="B")

        with pytest.raises(OutOfStock):
            InventoryService(db).reserve([StockLine(first.id, 2), StockLine(second.id, 3)])

        assert _stock(db, first.id) == 5
        assert _stock(db, second.id) == 1

    def test_missing_product(self, db):
        with pytest.raises(ProductNotFound):
            InventoryService(db).reserve([StockLine(999, 1)])

    def test_concurrent_buyers_never_oversell(self, session_factory, make_product):
        product = make_product(stock=10)

        def buy(_):
            session = session_factory()
            try:
                InventoryService(session).reserve([StockLine(product.id, 1)])
                return True
            except OutOfStock:
                return False
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(buy, range(25)))

        assert results.count(True) == 10

        check = session_factory()
        assert check.get(ProductModel, product.id).stock == 0
        check.close()


class TestRelease:
    def test_release_restores_and_uncounts(self, db, make_product):
        product = make_product(stock=5)
        svc = InventoryService(db)
        svc.reserve([StockLine(product.id, 4)])
        svc.release([StockLine(product.id, 4)])

        fresh = db.get(ProductModel, product.id, populate_existing=True)
        assert fresh.stock == 5
        assert fresh.sales_count == 0

    def test_release_of_missing_product_is_logged_only(self, db):
        InventoryService(db).release([StockLine(12345, 1)])

    def test_release_nothing(self, db):
        InventoryService(db).release([])
