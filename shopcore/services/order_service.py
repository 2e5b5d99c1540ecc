# shopcore/services/order_service.py
from datetime import datetime, timezone
from typing import Iterable

from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.domain.errors import Forbidden, IllegalTransition, OrderNotFound, ValidationError
from shopcore.domain.order_status import (
    CANCELLABLE,
    OrderStatus,
    check_transition,
    parse_order_status,
)
from shopcore.repos.order_repo import OrderRepo
from shopcore.services.inventory_service import InventoryService, StockLine
from shopcore.services.notification_service import NotificationService
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

# kolumna z czasem wejscia w dany status
_STATUS_TIMESTAMP = {
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def stock_lines(order: OrderModel) -> list[StockLine]:
    # zwrot zawsze z zamrozonych pozycji zamowienia, nigdy z koszyka
    return [StockLine(i.product_id, i.quantity) for i in order.items]


class OrderService:
    """
    Serwis odpowiedzialny za domene zamowien - maszyna stanow statusu.
    pending -> processing -> shipped -> delivered, cancelled tylko z pending/processing
    """

    def __init__(
        self,
        db: Session,
        inventory: InventoryService | None = None,
        notifier: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.inventory = inventory or InventoryService(db)
        self.notifier = notifier or NotificationService()

    # --- query ---

    def get_order(self, reference: str) -> OrderModel:
        order = self.repo.get_by_reference(reference)
        if not order:
            raise OrderNotFound(reference)
        return order

    def list_orders(
        self,
        order_status: str | None = None,
        payment_status: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[OrderModel], int]:
        if order_status:
            parse_order_status(order_status)
        page = max(page, 1)
        return self.repo.list_orders(order_status, payment_status, (page - 1) * limit, limit)

    def lookup_by_email(self, email: str) -> list[OrderModel]:
        """Use Case: klient szuka swoich zamowien po mailu, najnowsze pierwsze."""
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")
        return self.repo.list_by_email(email)

    # --- commands ---

    def update_status(self, reference: str, status_value: str, staff: str | None = None) -> OrderModel:
        """
        Use Case: zmiana statusu przez admina.
        Nieznany status -> 400, niedozwolone przejscie -> 409, ten sam status -> no-op.
        """
        target = parse_order_status(status_value)
        order = self.get_order(reference)

        if not check_transition(order.order_status, target):
            logger.info(f"Order {order.order_number} already {target.value}, nothing to do")
            return order

        logger.info(f"Staff {staff} changes order {order.order_number}: {order.order_status} -> {target.value}")

        if target == OrderStatus.CANCELLED:
            return self._cancel(order)

        self._transition(order, [order.order_status], target)
        self.notifier.status_update(order)
        return order

    def cancel_by_customer(self, reference: str, email: str) -> OrderModel:
        """
        Use Case: anulowanie przez klienta, weryfikacja po mailu z zamowienia.
        """
        order = self.get_order(reference)

        if not email or order.customer_email.lower() != email.strip().lower():
            logger.warning(f"Cancel of {order.order_number} rejected: email mismatch")
            raise Forbidden("Email does not match order")

        if order.order_status == OrderStatus.CANCELLED.value:
            return order

        if OrderStatus(order.order_status) not in CANCELLABLE:
            raise IllegalTransition(order.order_status, OrderStatus.CANCELLED.value)

        return self._cancel(order)

    def update_shipping(
        self,
        reference: str,
        tracking_number: str | None = None,
        carrier: str | None = None,
        estimated_delivery: datetime | None = None,
        staff: str | None = None,
    ) -> OrderModel:
        order = self.get_order(reference)

        if order.order_status == OrderStatus.CANCELLED.value:
            raise IllegalTransition(order.order_status, OrderStatus.SHIPPED.value)

        if tracking_number:
            order.tracking_number = tracking_number
        if carrier:
            order.carrier = carrier
        if estimated_delivery:
            order.estimated_delivery = estimated_delivery
        self.repo.commit()

        logger.info(f"Staff {staff} updated shipping info of {order.order_number}")

        # numer przesylki przy processing = wyslane
        if tracking_number and order.order_status == OrderStatus.PROCESSING.value:
            self._transition(order, [OrderStatus.PROCESSING.value], OrderStatus.SHIPPED)

        if tracking_number:
            self.notifier.shipping_update(order)
        return order

    def _transition(self, order: OrderModel, expected: list[str], target: OrderStatus):
        values = {"order_status": target.value}
        column = _STATUS_TIMESTAMP.get(target)
        if column:
            values[column] = datetime.now(timezone.utc)

        where = [OrderModel.order_status.in_(expected)]
        if target == OrderStatus.SHIPPED:
            # towar juz oddany na stan nie moze wyjechac
            where.append(OrderModel.stock_released.is_(False))

        changed = self.repo.conditional_update(order.id, where, values)
        if changed == 0:
            self.repo.rollback()
            self.repo.reload(order)
            if order.order_status == target.value:
                return
            raise IllegalTransition(order.order_status, target.value)

        self.repo.commit()
        self.repo.reload(order)
        logger.info(f"Order {order.order_number} -> {target.value}")

    def commit_with_stock_release(self, order: OrderModel, where: Iterable = ()) -> bool:
        """
        Commituje biezaca transakcje, a jesli towar nie byl jeszcze oddany - oddaje go w tej samej transakcji.
        Flaga stock_released przejmowana warunkowym UPDATE, wiec zwrot dzieje sie dokladnie raz na zamowienie.
        Zwraca True jesli ten wywolujacy faktycznie oddal towar.
        """
        claimed = self.repo.conditional_update(
            order.id,
            [OrderModel.stock_released.is_(False), *where],
            {"stock_released": True},
        )
        lines = stock_lines(order)

        if claimed and lines:
            # release commituje cala transakcje razem z flaga i statusem
            self.inventory.release(lines)
            logger.info(f"Stock restored for order {order.order_number}")
        else:
            self.repo.commit()

        self.repo.reload(order)
        return bool(claimed)

    def _cancel(self, order: OrderModel) -> OrderModel:
        changed = self.repo.conditional_update(
            order.id,
            [OrderModel.order_status.in_([s.value for s in CANCELLABLE])],
            {"order_status": OrderStatus.CANCELLED.value, "cancelled_at": datetime.now(timezone.utc)},
        )

        if changed == 0:
            # rownolegla zmiana statusu
            self.repo.rollback()
            self.repo.reload(order)
            if order.order_status == OrderStatus.CANCELLED.value:
                return order
            raise IllegalTransition(order.order_status, OrderStatus.CANCELLED.value)

        self.commit_with_stock_release(order)

        logger.info(f"Order {order.order_number} cancelled")
        self.notifier.order_cancelled(order)
        return order
