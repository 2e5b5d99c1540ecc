from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.data.models.cart import CartModel
from shopcore.data.models.cart_item import CartItemModel
from shopcore.domain.errors import (
    CartConflict,
    CartNotFound,
    ItemNotInCart,
    OutOfStock,
    ProductInactive,
    ProductNotFound,
    ValidationError,
)
from shopcore.domain.money import ZERO, to_money
from shopcore.repos.cart_repo import CartRepo
from shopcore.repos.product_repo import ProductRepo
from shopcore.services.views import cart_to_dict
from shopcore.utils.settings import CART_TTL_SECONDS
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs i proste use case dla domeny cart
    commands (add, update, remove, clear) modyfikuja stan
    query (get_or_create) odczyt, ewentualnie zaklada pusty koszyk
    """

    def __init__(self, db: Session, ttl_seconds: int | None = None):
        self.repo = CartRepo(db)
        self.products = ProductRepo(db)
        self.ttl_seconds = ttl_seconds or CART_TTL_SECONDS

    def _expires(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self.ttl_seconds)

    #query - odczyt
    def get_or_create(self, session_id: str) -> CartModel:
        cart = self.repo.get_cart(session_id)
        if cart:
            return cart

        try:
            cart = self.repo.create_cart(
                CartModel(
                    session_id=session_id,
                    total_amount=ZERO,
                    version=1,
                    expires_at=self._expires(),
                )
            )
            logger.info(f"Utworzono nowy koszyk {cart.id} dla sesji {session_id}")
            return cart
        except IntegrityError:
            # dwa rownolegle requesty dla nowej sesji, przegrany czyta koszyk zwyciezcy
            self.repo.rollback()
            logger.info(f"Koszyk dla sesji {session_id} zalozony rownolegle, pobieram ponownie")
            cart = self.repo.get_cart(session_id)
            if cart is None:
                raise
            return cart

    def get_cart(self, session_id: str, language: str = "en") -> Dict[str, Any]:
        return cart_to_dict(self.get_or_create(session_id), language)

    #commands
    def add_item(self, session_id: str, product_id: int, quantity: int) -> CartModel:
        if quantity <= 0:
            raise ValidationError("Quantity must be at least 1", quantity=quantity)

        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFound(product_id)
        if not product.is_active:
            raise ProductInactive(product_id, product.display_name())

        cart = self.get_or_create(session_id)
        existing_item = self.repo.get_cart_item(cart, product_id)

        # walidacja stanu wzgledem aktualnego stocku, nie tego z chwili poprzedniego dodania
        new_quantity = quantity + (existing_item.quantity if existing_item else 0)
        if product.stock < new_quantity:
            raise OutOfStock(product_id, product.stock, new_quantity, product.display_name())

        price = to_money(product.price)
        if existing_item:
            logger.info(
                f"Produkt {product_id} juz jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {new_quantity}"
            )
            existing_item.quantity = new_quantity
            existing_item.price = price  # update ceny
        else:
            logger.info(f"Dodaje nowy produkt {product_id} do koszyka {cart.id}")
            cart.items.append(
                CartItemModel(product_id=product_id, quantity=quantity, price=price)
            )

        return self._save(cart)

    def update_item(self, session_id: str, product_id: int, quantity: int) -> CartModel:
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative", quantity=quantity)

        cart = self.repo.get_cart(session_id)
        if not cart:
            raise CartNotFound(session_id)

        item = self.repo.get_cart_item(cart, product_id)
        if not item:
            raise ItemNotInCart(product_id)

        if quantity == 0:
            logger.info(f"Ilosc 0, usuwam produkt {product_id} z koszyka {cart.id}")
            cart.items.remove(item)
            return self._save(cart)

        product = self.products.get_product(product_id)
        if not product:
            raise ProductNotFound(product_id)
        if not product.is_active:
            raise ProductInactive(product_id, product.display_name())
        if product.stock < quantity:
            raise OutOfStock(product_id, product.stock, quantity, product.display_name())

        item.quantity = quantity
        item.price = to_money(product.price)
        return self._save(cart)

    def remove_item(self, session_id: str, item_id: int) -> CartModel:
        cart = self.repo.get_cart(session_id)
        if not cart:
            raise CartNotFound(session_id)

        item = next((i for i in cart.items if i.id == item_id), None)
        if item is None:
            # idempotentne, brak pozycji to nie blad
            return cart

        logger.info(f"Usuwanie pozycji {item_id} z koszyka {cart.id}")
        cart.items.remove(item)
        return self._save(cart)

    def clear(self, session_id: str) -> bool:
        deleted = self.repo.delete_cart(session_id)
        self.repo.commit()
        if deleted:
            logger.info(f"Koszyk sesji {session_id} usuniety")
        return bool(deleted)

    def _save(self, cart: CartModel) -> CartModel:
        # total zawsze liczony po stronie serwera z pozycji
        total = sum((Decimal(str(i.price)) * i.quantity for i in cart.items), ZERO)
        old_version = cart.version

        # Optimistic locking
        # np w bazie update set version 2 where id 1 and version 1
        rowcount = self.repo.update_cart_version(
            cart_id=cart.id,
            old_version=old_version,
            new_data={
                "version": old_version + 1,
                "total_amount": to_money(total),
                # kazda akcja przedluza waznosc koszyka
                "expires_at": self._expires(),
            },
        )

        if rowcount == 0:
            self.repo.rollback()
            raise CartConflict(cart.session_id)

        self.repo.commit()
        self.repo.db.refresh(cart)

        logger.info(f"Koszyk {cart.id} zapisany, nowa wersja: {cart.version}, total: {cart.total_amount}")
        return cart
