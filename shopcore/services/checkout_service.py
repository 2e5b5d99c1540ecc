# shopcore/services/checkout_service.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel
from shopcore.domain.errors import (
    CheckoutInProgress,
    DuplicatePayment,
    EmptyCart,
    OutOfStock,
    PaymentAmountMismatch,
    PaymentNotCompleted,
    ProductInactive,
    ProductNotFound,
)
from shopcore.domain.money import Totals, amounts_match, compute_totals
from shopcore.domain.order_status import OrderStatus, PaymentStatus
from shopcore.repos.cart_repo import CartRepo
from shopcore.repos.order_repo import OrderRepo
from shopcore.repos.product_repo import ProductRepo
from shopcore.services.inventory_service import InventoryService, StockLine
from shopcore.services.lock_service import LockService
from shopcore.services.notification_service import NotificationService
from shopcore.services.payment_gateway import PaymentGateway
from shopcore.services.sequence_service import SequenceService
from shopcore.utils.settings import (
    CHECKOUT_LOCK_TTL_SECONDS,
    LOW_STOCK_THRESHOLD,
    PAYMENT_AMOUNT_EPSILON,
    SHIPPING_FEE,
    TAX_RATE,
)
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class CheckoutResult(NamedTuple):
    order: OrderModel
    replayed: bool = False


class CheckoutService:
    """
    Use Case: koszyk -> zamowienie.

    1. blokada checkoutu dla sesji (redis) + ewentualny replay po idempotency key
    2. koszyk niepusty, produkty istnieja, aktywne, stan wystarcza
    3. wyliczenie kwot ze snapshotu cen w koszyku
    4. weryfikacja platnosci (jesli podana) - zanim ruszymy magazyn
    5. rezerwacja stanow
    6. numer zamowienia
    7. zapis zamowienia + usuniecie koszyka w jednej transakcji
    8. powiadomienia (best effort)

    Kroki 5-7 sa efektywnie atomowe: kazdy blad po rezerwacji oddaje towar przed zgloszeniem bledu.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService,
        gateway: PaymentGateway,
        notifier: NotificationService,
        inventory: InventoryService | None = None,
        sequence: SequenceService | None = None,
        tax_rate: Decimal | None = None,
        shipping_fee: Decimal | None = None,
        low_stock_threshold: int | None = None,
    ):
        self.db = db
        self.carts = CartRepo(db)
        self.orders = OrderRepo(db)
        self.products = ProductRepo(db)
        self.lock_service = lock_service
        self.gateway = gateway
        self.notifier = notifier
        self.inventory = inventory or InventoryService(db)
        self.sequence = sequence or SequenceService(db)
        self.tax_rate = Decimal(str(tax_rate if tax_rate is not None else TAX_RATE))
        self.shipping_fee = Decimal(str(shipping_fee if shipping_fee is not None else SHIPPING_FEE))
        self.low_stock_threshold = (
            low_stock_threshold if low_stock_threshold is not None else LOW_STOCK_THRESHOLD
        )
        self.epsilon = Decimal(PAYMENT_AMOUNT_EPSILON)

    def checkout(
        self,
        session_id: str,
        customer: dict,
        shipping_address: dict,
        payment_intent_id: str | None = None,
        idempotency_key: str | None = None,
        language: str = "en",
        notes: str | None = None,
    ) -> CheckoutResult:
        token = uuid.uuid4().hex
        if not self.lock_service.acquire_checkout_lock(session_id, token, CHECKOUT_LOCK_TTL_SECONDS):
            logger.warning(f"Checkout for session {session_id} already in progress")
            raise CheckoutInProgress(session_id)

        try:
            if idempotency_key:
                existing = self.orders.get_by_idempotency_key(idempotency_key)
                if existing:
                    logger.info(f"Idempotent replay of checkout {idempotency_key} -> {existing.order_number}")
                    return CheckoutResult(existing, replayed=True)

            return self._checkout(
                session_id, customer, shipping_address, payment_intent_id, idempotency_key, language, notes
            )
        finally:
            try:
                self.lock_service.release_checkout_lock(session_id, token)
            except Exception as e:
                # lock i tak wygasnie po TTL
                logger.warning(f"Failed to release checkout lock for {session_id}: {e}")

    def _checkout(
        self,
        session_id: str,
        customer: dict,
        shipping_address: dict,
        payment_intent_id: str | None,
        idempotency_key: str | None,
        language: str,
        notes: str | None,
    ) -> CheckoutResult:
        cart = self.carts.get_cart(session_id)
        if not cart or not cart.items:
            raise EmptyCart()

        logger.info(f"Checkout started for cart {cart.id} ({len(cart.items)} items)")

        # walidacja wzgledem aktualnego katalogu, bez zadnych efektow ubocznych
        products = {}
        for item in cart.items:
            product = self.products.refresh_product(item.product_id)
            if not product:
                raise ProductNotFound(item.product_id)
            if not product.is_active:
                raise ProductInactive(product.id, product.display_name(language))
            if product.stock < item.quantity:
                raise OutOfStock(product.id, product.stock, item.quantity, product.display_name(language))
            products[product.id] = product

        # ceny ze snapshotu koszyka, zmiana ceny w trakcie nie zmienia oczekiwanej kwoty
        totals = compute_totals(
            [(item.price, item.quantity) for item in cart.items],
            tax_rate=self.tax_rate,
            shipping_fee=self.shipping_fee,
        )

        paid = False
        if payment_intent_id:
            self._verify_payment(payment_intent_id, totals)
            paid = True

        lines = [StockLine(item.product_id, item.quantity) for item in cart.items]
        self.inventory.reserve(lines)

        try:
            order_number = self.sequence.next_order_number()
            order = self._build_order(
                order_number, cart, products, totals, customer, shipping_address,
                payment_intent_id, idempotency_key, language, notes, paid,
            )
            self.orders.add_order(order)
            self.carts.delete_cart(session_id)
            self.orders.commit()
        except IntegrityError:
            self.orders.rollback()
            self.inventory.release(lines)
            if idempotency_key:
                # rownolegly request z tym samym kluczem wygral
                winner = self.orders.get_by_idempotency_key(idempotency_key)
                if winner:
                    logger.info(f"Checkout {idempotency_key} lost the race to {winner.order_number}")
                    return CheckoutResult(winner, replayed=True)
            raise
        except Exception:
            logger.error(f"Persisting order for session {session_id} failed, releasing stock")
            self.orders.rollback()
            self.inventory.release(lines)
            raise

        self.orders.reload(order)
        logger.info(f"Order {order.order_number} created from cart {cart.id}, total {order.total}")

        self._notify(order, products.keys())
        return CheckoutResult(order)

    def _verify_payment(self, payment_intent_id: str, totals: Totals):
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)

        if intent.status != "succeeded":
            raise PaymentNotCompleted(payment_intent_id, intent.status)

        if not amounts_match(totals.total, intent.amount, self.epsilon):
            logger.warning(f"Payment {payment_intent_id} amount {intent.amount} != expected {totals.total}")
            raise PaymentAmountMismatch(totals.total, intent.amount)

        if self.orders.get_by_payment_intent(payment_intent_id):
            raise DuplicatePayment(payment_intent_id)

    def _build_order(
        self, order_number, cart, products, totals: Totals, customer, shipping_address,
        payment_intent_id, idempotency_key, language, notes, paid,
    ) -> OrderModel:
        now = datetime.now(timezone.utc)
        return OrderModel(
            order_number=order_number,
            idempotency_key=idempotency_key,
            session_id=cart.session_id,
            customer_name=customer["name"],
            customer_email=customer["email"].strip().lower(),
            customer_phone=customer["phone"],
            shipping_street=shipping_address["street"],
            shipping_city=shipping_address["city"],
            shipping_postal_code=shipping_address["postal_code"],
            shipping_country=shipping_address.get("country") or "Norway",
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping_fee=totals.shipping_fee,
            discount=totals.discount,
            total=totals.total,
            order_status=(OrderStatus.PROCESSING if paid else OrderStatus.PENDING).value,
            payment_status=(PaymentStatus.PAID if paid else PaymentStatus.PENDING).value,
            payment_method="stripe",
            payment_intent_id=payment_intent_id,
            paid_at=now if paid else None,
            language=language,
            notes=notes,
            items=[
                OrderItemModel(
                    product_id=item.product_id,
                    name=dict(products[item.product_id].name),
                    sku=products[item.product_id].sku,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in cart.items
            ],
        )

    def _notify(self, order: OrderModel, product_ids):
        # zamowienie jest juz zapisane, blad powiadomien tylko logujemy
        try:
            self.notifier.order_confirmation(order)
            self.notifier.admin_new_order(order)

            for product in self.inventory.stock_levels(product_ids).values():
                if product.stock <= self.low_stock_threshold:
                    self.notifier.low_stock(product)
        except Exception:
            logger.exception(f"Notifications for order {order.order_number} failed")
