# shopcore/repos/cart_repo.py
from datetime import datetime

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel


class CartRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_cart(self, session_id: str) -> CartModel | None:
        return self.db.execute(
            select(CartModel).where(CartModel.session_id == session_id)
        ).scalar_one_or_none()

    def create_cart(self, cart: CartModel) -> CartModel:
        self.db.add(cart)
        self.db.commit()
        self.db.refresh(cart)
        return cart

    def get_cart_item(self, cart: CartModel, product_id: int) -> CartItemModel | None:
        for item in cart.items:
            if item.product_id == product_id:
                return item
        return None

    def update_cart_version(self, cart_id: int, old_version: int, new_data: dict) -> int:
        # optimistic locking: UPDATE carts SET version = v+1 WHERE id = ? AND version = v
        result = self.db.execute(
            update(CartModel)
            .where(CartModel.id == cart_id, CartModel.version == old_version)
            .values(**new_data)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def delete_cart(self, session_id: str) -> int:
        cart = self.get_cart(session_id)
        if not cart:
            return 0
        self.db.delete(cart)
        self.db.flush()
        return 1

    def delete_expired(self, now: datetime) -> int:
        expired_ids = select(CartModel.id).where(CartModel.expires_at < now)
        self.db.execute(
            delete(CartItemModel)
            .where(CartItemModel.cart_id.in_(expired_ids))
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(
            delete(CartModel)
            .where(CartModel.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
