# shopcore/services/views.py
"""
Zamiana modeli ORM na dicty dla routerow (response_model waliduje reszte).
"""
from decimal import Decimal
from typing import Any, Dict

from shopcore.data.models.cart import CartModel
from shopcore.data.models.order import OrderModel
from shopcore.data.models.product import localized
from shopcore.services.notification_service import status_text

_TRACK_STEPS = ["pending", "processing", "shipped", "delivered"]


def cart_to_dict(cart: CartModel, language: str = "en") -> Dict[str, Any]:
    return {
        "id": cart.id,
        "session_id": cart.session_id,
        "items": [
            {
                "id": i.id,
                "product_id": i.product_id,
                "name": localized(i.product.name, language) if i.product else None,
                "sku": i.product.sku if i.product else None,
                "quantity": i.quantity,
                "price": i.price,
                "subtotal": Decimal(str(i.price)) * i.quantity,
            }
            for i in cart.items
        ],
        "total": cart.total_amount,
        "expires_at": cart.expires_at,
    }


def order_to_dict(order: OrderModel, language: str | None = None) -> Dict[str, Any]:
    language = language or order.language
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer": {
            "name": order.customer_name,
            "email": order.customer_email,
            "phone": order.customer_phone,
        },
        "shipping_address": {
            "street": order.shipping_street,
            "city": order.shipping_city,
            "postal_code": order.shipping_postal_code,
            "country": order.shipping_country,
        },
        "items": [
            {
                "product_id": i.product_id,
                "name": localized(i.name, language),
                "sku": i.sku,
                "quantity": i.quantity,
                "price": i.price,
                "subtotal": Decimal(str(i.price)) * i.quantity,
            }
            for i in order.items
        ],
        "subtotal": order.subtotal,
        "tax": order.tax,
        "shipping_fee": order.shipping_fee,
        "discount": order.discount,
        "total": order.total,
        "order_status": order.order_status,
        "payment_status": order.payment_status,
        "payment_method": order.payment_method,
        "payment_intent_id": order.payment_intent_id,
        "tracking_number": order.tracking_number,
        "carrier": order.carrier,
        "estimated_delivery": order.estimated_delivery,
        "refunds": [
            {
                "refund_id": r.refund_id,
                "amount": r.amount,
                "reason": r.reason,
                "created_at": r.created_at,
            }
            for r in order.refunds
        ],
        "language": order.language,
        "notes": order.notes,
        "paid_at": order.paid_at,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def tracking_to_dict(order: OrderModel, language: str = "en") -> Dict[str, Any]:
    """Publiczny, okrojony widok - bez danych klienta i adresu."""
    status = order.order_status
    reached = _TRACK_STEPS.index(status) if status in _TRACK_STEPS else -1
    timestamps = {
        "pending": order.created_at,
        "processing": order.paid_at,
        "shipped": order.shipped_at,
        "delivered": order.delivered_at,
    }

    history = [
        {
            "status": step,
            "message": status_text(step, language),
            "completed": idx <= reached or step == "pending",
            "at": timestamps[step] if idx <= reached or step == "pending" else None,
        }
        for idx, step in enumerate(_TRACK_STEPS)
    ]
    if status == "cancelled":
        history.append(
            {
                "status": "cancelled",
                "message": status_text("cancelled", language),
                "completed": True,
                "at": order.cancelled_at,
            }
        )

    return {
        "order_number": order.order_number,
        "order_status": status,
        "payment_status": order.payment_status,
        "item_count": len(order.items),
        "total": order.total,
        "tracking_number": order.tracking_number,
        "carrier": order.carrier,
        "estimated_delivery": order.estimated_delivery,
        "order_date": order.created_at,
        "last_update": order.updated_at,
        "status_history": history,
    }
