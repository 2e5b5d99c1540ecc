# shopcore/repos/order_repo.py
from decimal import Decimal
from typing import Iterable

from sqlalchemy import select, update, func, case
from sqlalchemy.orm import Session

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_refund import OrderRefundModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    # --- odczyt ---

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_by_number(self, order_number: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.order_number == order_number.strip().upper())
        ).scalar_one_or_none()

    def get_by_reference(self, reference: str) -> OrderModel | None:
        # numer zamowienia albo wewnetrzne id
        order = self.get_by_number(reference)
        if order is None and reference.isdigit():
            order = self.get_order(int(reference))
        return order

    def get_by_payment_intent(self, payment_intent_id: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.payment_intent_id == payment_intent_id)
        ).scalars().first()

    def get_by_idempotency_key(self, key: str) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel).where(OrderModel.idempotency_key == key)
        ).scalar_one_or_none()

    def list_by_email(self, email: str) -> list[OrderModel]:
        # maile zapisywane malymi literami
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.customer_email == email.strip().lower())
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def reload(self, order: OrderModel) -> OrderModel:
        self.db.refresh(order)
        return order

    def list_orders(
        self,
        order_status: str | None = None,
        payment_status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[OrderModel], int]:
        query = select(OrderModel)
        if order_status:
            query = query.where(OrderModel.order_status == order_status)
        if payment_status:
            query = query.where(OrderModel.payment_status == payment_status)

        total = self.db.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()
        orders = self.db.execute(
            query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars().all()
        return list(orders), total

    # --- zapis ---

    def add_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def conditional_update(self, order_id: int, where: Iterable, values: dict) -> int:
        """UPDATE orders SET ... WHERE id = ? AND <warunki>; zwraca rowcount."""
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, *where)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def mark_paid(self, order_id: int, payment_intent_id: str, payable: Iterable[str], paid_at) -> int:
        # pending -> processing, reszta statusow zostaje
        return self.conditional_update(
            order_id,
            [OrderModel.payment_status.in_(list(payable))],
            {
                "payment_status": "paid",
                "payment_intent_id": payment_intent_id,
                "paid_at": paid_at,
                "order_status": case(
                    (OrderModel.order_status == "pending", "processing"),
                    else_=OrderModel.order_status,
                ),
            },
        )

    def add_refund(self, order: OrderModel, refund: OrderRefundModel) -> OrderRefundModel:
        refund.order_id = order.id
        self.db.add(refund)
        self.db.flush()
        return refund

    def has_refund(self, refund_id: str) -> bool:
        return self.db.execute(
            select(OrderRefundModel.id).where(OrderRefundModel.refund_id == refund_id)
        ).first() is not None

    def refunded_total(self, order_id: int) -> Decimal:
        value = self.db.execute(
            select(func.coalesce(func.sum(OrderRefundModel.amount), 0))
            .where(OrderRefundModel.order_id == order_id)
        ).scalar_one()
        return Decimal(str(value))

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
