"""Tests for the cart store."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import update

from shopcore.data.models.cart import CartModel
from shopcore.domain.errors import (
    CartConflict,
    CartNotFound,
    ItemNotInCart,
    OutOfStock,
    ProductInactive,
    ProductNotFound,
    ValidationError,
)
from shopcore.repos.cart_repo import CartRepo
from shopcore.services.cart_service import CartService
from shopcore.tasks.expire import expire_carts


class TestCartService:
    def test_get_or_create(self, db):
        svc = CartService(db)
        cart = svc.get_or_create("s1")
        assert cart.items == []
        assert svc.get_or_create("s1").id == cart.id

    def test_add_new_line_and_total(self, db, make_product):
        product = make_product(price="1000.00", stock=5)
        cart = CartService(db).add_item("s1", product.id, 2)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.total_amount == Decimal("2000.00")
        assert cart.version == 2

    def test_add_existing_sums_and_refreshes_price(self, db, make_product):
        product = make_product(price="100.00", stock=5)
        svc = CartService(db)
        svc.add_item("s1", product.id, 1)

        product.price = Decimal("120.00")
        db.commit()
        cart = svc.add_item("s1", product.id, 2)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3
        assert cart.items[0].price == Decimal("120.00")
        assert cart.total_amount == Decimal("360.00")

    def test_add_checks_existing_plus_new(self, db, make_product):
        product = make_product(stock=3)
        svc = CartService(db)
        svc.add_item("s1", product.id, 2)
        with pytest.raises(OutOfStock) as exc:
            svc.add_item("s1", product.id, 2)
        assert exc.value.details == {"product_id": product.id, "available": 3, "requested": 4}

    def test_add_rejects_bad_input(self, db, make_product):
        svc = CartService(db)
        with pytest.raises(ProductNotFound):
            svc.add_item("s1", 404, 1)
        with pytest.raises(ValidationError):
            svc.add_item("s1", 1, 0)
        inactive = make_product(active=False)
        with pytest.raises(ProductInactive):
            svc.add_item("s1", inactive.id, 1)

    def test_update_and_remove_line_with_zero(self, db, make_product):
        product = make_product(price="10.00", stock=10)
        svc = CartService(db)
        svc.add_item("s1", product.id, 1)

        cart = svc.update_item("s1", product.id, 4)
        assert cart.items[0].quantity == 4
        assert cart.total_amount == Decimal("40.00")

        cart = svc.update_item("s1", product.id, 0)
        assert cart.items == []
        assert cart.total_amount == Decimal("0.00")

    def test_update_errors(self, db, make_product):
        product = make_product(stock=2)
        svc = CartService(db)
        with pytest.raises(CartNotFound):
            svc.update_item("nope", product.id, 1)

        svc.add_item("s1", product.id, 1)
        with pytest.raises(ItemNotInCart):
            svc.update_item("s1", product.id + 1, 1)
        with pytest.raises(OutOfStock):
            svc.update_item("s1", product.id, 3)

    def test_update_rejects_deactivated_product(self, db, make_product):
        product = make_product(stock=5)
        svc = CartService(db)
        svc.add_item("s1", product.id, 1)

        product.is_active = False
        db.commit()

        with pytest.raises(ProductInactive):
            svc.update_item("s1", product.id, 2)
        assert svc.repo.get_cart("s1").items[0].quantity == 1

    def test_get_or_create_lost_race_returns_winner(self, session_factory):
        winner_session, loser_session = session_factory(), session_factory()
        try:
            winner = CartService(winner_session).get_or_create("s1")

            loser = CartService(loser_session)
            real_get_cart = loser.repo.get_cart
            calls = []

            def stale_get_cart(session_id):
                # pierwszy odczyt sprzed insertu zwyciezcy
                calls.append(session_id)
                return None if len(calls) == 1 else real_get_cart(session_id)

            loser.repo.get_cart = stale_get_cart

            cart = loser.get_or_create("s1")
            assert cart.id == winner.id
            assert len(calls) == 2
        finally:
            winner_session.close()
            loser_session.close()

    def test_remove_item_is_idempotent(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        cart = svc.add_item("s1", product.id, 1)
        item_id = cart.items[0].id

        assert svc.remove_item("s1", item_id).items == []
        assert svc.remove_item("s1", item_id).items == []
        with pytest.raises(CartNotFound):
            svc.remove_item("missing", item_id)

    def test_mutation_slides_expiry(self, db, make_product):
        product = make_product()
        svc = CartService(db, ttl_seconds=60)
        cart = svc.get_or_create("s1")
        db.execute(
            update(CartModel)
            .where(CartModel.id == cart.id)
            .values(expires_at=datetime.now(timezone.utc) + timedelta(seconds=5))
        )
        db.commit()

        cart = svc.add_item("s1", product.id, 1)
        remaining = cart.expires_at.replace(tzinfo=timezone.utc) - datetime.now(timezone.utc)
        assert remaining > timedelta(seconds=30)

    def test_concurrent_modification_conflicts(self, session_factory, make_product):
        product = make_product(stock=10)
        first, second = session_factory(), session_factory()
        try:
            CartService(first).add_item("s1", product.id, 1)
            stale = CartRepo(second).get_cart("s1")

            CartService(first).add_item("s1", product.id, 1)

            with pytest.raises(CartConflict):
                CartService(second)._save(stale)
        finally:
            first.close()
            second.close()

    def test_clear(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        svc.add_item("s1", product.id, 1)
        assert svc.clear("s1") is True
        assert svc.clear("s1") is False


class TestExpiry:
    def test_reaper_deletes_only_expired(self, db, make_product):
        product = make_product()
        svc = CartService(db)
        svc.add_item("old", product.id, 1)
        svc.get_or_create("fresh")
        db.execute(
            update(CartModel)
            .where(CartModel.session_id == "old")
            .values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
        )
        db.commit()

        assert expire_carts(db) == 1
        assert CartRepo(db).get_cart("old") is None
        assert CartRepo(db).get_cart("fresh") is not None


class TestCartApi:
    def test_get_unknown_session_creates_empty_cart(self, client):
        response = client.get("/cart/new-session")
        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"] == "new-session"
        assert data["items"] == []
        assert data["total"] == 0

    def test_add_generates_session(self, client, make_product):
        product = make_product(price="250.00", stock=5)
        response = client.post("/cart/add", json={"productId": product.id, "quantity": 2})
        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"]
        assert data["total"] == 500.0
        assert data["items"][0]["name"] == "Test product"

    def test_localized_names(self, client, make_product):
        product = make_product()
        client.post("/cart/add", json={"sessionId": "s1", "productId": product.id, "quantity": 1})
        data = client.get("/cart/s1", params={"lang": "no"}).json()
        assert data["items"][0]["name"] == "Testprodukt"

        data = client.get("/cart/s1", headers={"Accept-Language": "nb-NO,nb;q=0.9"}).json()
        assert data["items"][0]["name"] == "Testprodukt"

    def test_out_of_stock_body(self, client, make_product):
        product = make_product(stock=1)
        response = client.post("/cart/add", json={"sessionId": "s1", "productId": product.id, "quantity": 2})
        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "OUT_OF_STOCK"
        assert body["details"]["available"] == 1
        assert body["details"]["requested"] == 2

    def test_unknown_product(self, client):
        response = client.post("/cart/add", json={"sessionId": "s1", "productId": 999, "quantity": 1})
        assert response.status_code == 404
        assert response.json()["reason"] == "PRODUCT_NOT_FOUND"

    def test_validation_error_shape(self, client):
        response = client.post("/cart/add", json={"productId": 1, "quantity": 0})
        assert response.status_code == 400
        assert response.json()["reason"] == "VALIDATION_ERROR"

    def test_update_remove_and_clear(self, client, make_product):
        product = make_product(price="10.00", stock=10)
        added = client.post("/cart/add", json={"sessionId": "s1", "productId": product.id, "quantity": 1}).json()
        item_id = added["items"][0]["id"]

        updated = client.put("/cart/update", json={"sessionId": "s1", "productId": product.id, "quantity": 3})
        assert updated.json()["total"] == 30.0

        removed = client.delete(f"/cart/s1/items/{item_id}")
        assert removed.status_code == 200
        assert removed.json()["items"] == []
        assert client.delete(f"/cart/s1/items/{item_id}").status_code == 200

        assert client.delete("/cart/s1").status_code == 204
        assert client.delete("/cart/s1").status_code == 204

    def test_update_missing_cart(self, client):
        response = client.put("/cart/update", json={"sessionId": "none", "productId": 1, "quantity": 1})
        assert response.status_code == 404
        assert response.json()["reason"] == "CART_NOT_FOUND"
