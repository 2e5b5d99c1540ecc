# shopcore/services/payment_service.py
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_refund import OrderRefundModel
from shopcore.domain.errors import (
    AlreadyPaid,
    DuplicatePayment,
    OrderNotFound,
    PaymentAmountMismatch,
    PaymentNotCompleted,
    RefundExceedsBalance,
    RefundNotAllowed,
    ValidationError,
)
from shopcore.domain.money import amounts_match, from_minor_units, to_money
from shopcore.domain.order_status import CANCELLABLE, PAYABLE, OrderStatus, PaymentStatus
from shopcore.repos.order_repo import OrderRepo
from shopcore.services.notification_service import NotificationService
from shopcore.services.order_service import OrderService
from shopcore.services.payment_gateway import PaymentGateway, PaymentIntentInfo, RefundInfo
from shopcore.utils.settings import PAYMENT_AMOUNT_EPSILON
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

_SETTLED = {PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value}


class PaymentService:
    """
    Uzgadnianie platnosci.
    Synchroniczne confirm i asynchroniczny webhook koncza sie tym samym warunkowym UPDATE (apply_paid),
    wiec kolejnosc i duplikaty zdarzen nie maja znaczenia.
    """

    def __init__(
        self,
        db: Session,
        gateway: PaymentGateway,
        notifier: NotificationService | None = None,
        order_service: OrderService | None = None,
        epsilon: Decimal | None = None,
    ):
        self.repo = OrderRepo(db)
        self.gateway = gateway
        self.notifier = notifier or NotificationService()
        self.order_service = order_service or OrderService(db, notifier=self.notifier)
        self.epsilon = Decimal(str(epsilon if epsilon is not None else PAYMENT_AMOUNT_EPSILON))

    # --- create / confirm ---

    def create_intent(self, reference: str, amount: Decimal | None = None) -> PaymentIntentInfo:
        order = self.order_service.get_order(reference)

        if order.payment_status in _SETTLED:
            raise AlreadyPaid(order.order_number)

        amount = to_money(amount) if amount is not None else to_money(order.total)
        if amount <= 0:
            raise ValidationError("Amount must be positive", amount=str(amount))

        intent = self.gateway.create_payment_intent(
            amount,
            {"order_number": order.order_number, "order_id": str(order.id)},
        )

        order.payment_intent_id = intent.id
        self.repo.commit()

        logger.info(f"Payment intent {intent.id} created for order {order.order_number}")
        return intent

    def confirm(self, reference: str, payment_intent_id: str) -> OrderModel:
        """
        Use Case: klient potwierdza platnosc po stronie frontendu.
        Ponowne potwierdzenie tym samym intentem = sukces bez efektow ubocznych.
        """
        order = self.order_service.get_order(reference)

        if order.payment_status in _SETTLED:
            if order.payment_intent_id == payment_intent_id:
                return order
            raise DuplicatePayment(payment_intent_id)

        other = self.repo.get_by_payment_intent(payment_intent_id)
        if other and other.id != order.id:
            raise DuplicatePayment(payment_intent_id)

        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        if intent.status != "succeeded":
            raise PaymentNotCompleted(payment_intent_id, intent.status)
        if not amounts_match(order.total, intent.amount, self.epsilon):
            raise PaymentAmountMismatch(order.total, intent.amount)

        self.apply_paid(order, payment_intent_id)
        return order

    def apply_paid(self, order: OrderModel, payment_intent_id: str) -> bool:
        """
        payment pending/failed -> paid, order pending -> processing.
        Zwraca False gdy zmiana byla juz zastosowana (0 wierszy), wtedy bez powiadomien.
        """
        changed = self.repo.mark_paid(
            order.id,
            payment_intent_id,
            [s.value for s in PAYABLE],
            datetime.now(timezone.utc),
        )
        self.repo.commit()
        self.repo.reload(order)

        if not changed:
            logger.info(f"Payment {payment_intent_id} already applied to {order.order_number}")
            return False

        logger.info(f"Order {order.order_number} paid with {payment_intent_id}")
        if order.order_status == "cancelled":
            logger.warning(f"Payment received for cancelled order {order.order_number}, needs refund")

        self.notifier.payment_confirmation(order)
        return True

    def intent_status(self, payment_intent_id: str) -> tuple[PaymentIntentInfo, OrderModel | None]:
        """Stan intentu u Stripe plus zamowienie, ktore go trzyma (jesli jest). Bez zapisow."""
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        return intent, self.repo.get_by_payment_intent(payment_intent_id)

    # --- webhook ---

    def handle_webhook(self, payload: bytes, signature: str | None) -> str:
        event = self.gateway.construct_event(payload, signature)
        event_type = event.get("type")
        obj = (event.get("data") or {}).get("object") or {}

        logger.info(f"Webhook {event.get('id')} {event_type}")

        if event_type == "payment_intent.succeeded":
            self._on_succeeded(obj)
        elif event_type in ("payment_intent.payment_failed", "payment_intent.canceled"):
            self._on_failed(obj)
        elif event_type == "charge.refunded":
            self._on_refunded(obj)
        else:
            logger.info(f"Unhandled webhook event type {event_type}")

        return event_type

    def _on_succeeded(self, intent: dict):
        order = self.repo.get_by_payment_intent(intent.get("id"))
        if not order:
            logger.warning(f"No order for payment intent {intent.get('id')}")
            return

        actual = from_minor_units(intent.get("amount") or 0)
        if not amounts_match(order.total, actual, self.epsilon):
            logger.error(
                f"Webhook amount mismatch for {order.order_number}: expected {order.total}, got {actual}"
            )
            return

        self.apply_paid(order, intent["id"])

    def _on_failed(self, intent: dict):
        order = self.repo.get_by_payment_intent(intent.get("id"))
        if not order:
            logger.warning(f"No order for payment intent {intent.get('id')}")
            return

        changed = self.repo.conditional_update(
            order.id,
            [OrderModel.payment_status == PaymentStatus.PENDING.value],
            {"payment_status": PaymentStatus.FAILED.value},
        )
        self.repo.commit()
        if changed:
            logger.info(f"Payment for {order.order_number} failed")

    def _on_refunded(self, charge: dict):
        order = self.repo.get_by_payment_intent(charge.get("payment_intent"))
        if not order:
            logger.warning(f"No order for refunded charge {charge.get('id')}")
            return

        refunds = (charge.get("refunds") or {}).get("data") or []
        for item in refunds:
            self._record_refund(
                order,
                refund_id=item["id"],
                amount=from_minor_units(item.get("amount") or 0),
                reason=item.get("reason"),
                created=_timestamp(item.get("created")),
            )
        self.repo.commit()

        if charge.get("refunded") or self._fully_refunded(order):
            self._mark_refunded(order)

    # --- refund ---

    def refund(
        self,
        payment_intent_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
        staff: str | None = None,
    ) -> tuple[OrderModel, RefundInfo]:
        order = self.repo.get_by_payment_intent(payment_intent_id)
        if not order:
            raise OrderNotFound(payment_intent_id)

        if order.payment_status != PaymentStatus.PAID.value:
            raise RefundNotAllowed(order.order_number, order.payment_status)

        refundable = to_money(order.total) - self.repo.refunded_total(order.id)
        requested = to_money(amount) if amount is not None else refundable
        if requested <= 0:
            raise ValidationError("Refund amount must be positive", amount=str(requested))
        if requested > refundable:
            raise RefundExceedsBalance(refundable, requested)

        logger.info(f"Staff {staff} refunds {requested} of order {order.order_number}")
        refund = self.gateway.create_refund(payment_intent_id, requested, reason)

        self._record_refund(order, refund.id, refund.amount, refund.reason or reason, refund.created)
        self.repo.commit()

        if self._fully_refunded(order):
            self._mark_refunded(order)
        else:
            self.repo.reload(order)

        return order, refund

    def _record_refund(self, order: OrderModel, refund_id: str, amount: Decimal, reason, created):
        # ten sam refund moze przyjsc z API i z webhooka
        if self.repo.has_refund(refund_id):
            return
        self.repo.add_refund(
            order,
            OrderRefundModel(refund_id=refund_id, amount=amount, reason=reason, created_at=created),
        )
        logger.info(f"Refund {refund_id} ({amount}) recorded for {order.order_number}")

    def _fully_refunded(self, order: OrderModel) -> bool:
        return self.repo.refunded_total(order.id) >= to_money(order.total) - self.epsilon

    def _mark_refunded(self, order: OrderModel):
        changed = self.repo.conditional_update(
            order.id,
            [OrderModel.payment_status == PaymentStatus.PAID.value],
            {"payment_status": PaymentStatus.REFUNDED.value},
        )
        # pelny zwrot niewyslanego zamowienia = anulowanie, razem ze zwrotem towaru w jednej transakcji
        cancelled = self.repo.conditional_update(
            order.id,
            [OrderModel.order_status.in_([s.value for s in CANCELLABLE])],
            {"order_status": OrderStatus.CANCELLED.value, "cancelled_at": datetime.now(timezone.utc)},
        )
        # wyslane zostaje wyslane, flaga pilnuje jednokrotnosci zwrotu towaru
        self.order_service.commit_with_stock_release(
            order,
            where=[OrderModel.order_status == OrderStatus.CANCELLED.value],
        )
        if changed:
            logger.info(f"Order {order.order_number} fully refunded")
        if cancelled:
            logger.info(f"Order {order.order_number} cancelled after full refund")
            self.notifier.order_cancelled(order)


def _timestamp(value) -> datetime:
    if value:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return datetime.now(timezone.utc)
