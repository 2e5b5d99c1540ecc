# shopcore/data/models/order.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, Text
from sqlalchemy.orm import relationship

from shopcore.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String, nullable=False, unique=True)
    idempotency_key = Column(String, nullable=True, unique=True)
    session_id = Column(String, nullable=True)

    customer_name = Column(String, nullable=False)
    customer_email = Column(String, nullable=False, index=True)
    customer_phone = Column(String, nullable=False)

    shipping_street = Column(String, nullable=False)
    shipping_city = Column(String, nullable=False)
    shipping_postal_code = Column(String, nullable=False)
    shipping_country = Column(String, nullable=False)

    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    order_status = Column(String, nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    payment_status = Column(String, nullable=False, default="pending")  # pending, paid, failed, refunded
    payment_method = Column(String, nullable=False, default="stripe")
    payment_intent_id = Column(String, nullable=True, index=True)

    tracking_number = Column(String, nullable=True)
    carrier = Column(String, nullable=True)
    estimated_delivery = Column(DateTime(timezone=True), nullable=True)

    language = Column(String, nullable=False, default="en")
    notes = Column(Text, nullable=True)

    # ustawiane raz, przy pierwszym zwrocie stanow magazynowych
    stock_released = Column(Boolean, nullable=False, default=False)

    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
    refunds = relationship(
        "OrderRefundModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderRefundModel.id",
    )
