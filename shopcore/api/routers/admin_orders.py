# shopcore/api/routers/admin_orders.py
import math

from fastapi import APIRouter, Depends, Query

from shopcore.api.deps import get_order_service, get_sequence_service, require_staff
from shopcore.domain.schemas import (
    OrderListOut,
    OrderOut,
    SequenceSyncOut,
    ShippingUpdateIn,
    StatusUpdateIn,
)
from shopcore.services.order_service import OrderService
from shopcore.services.sequence_service import SequenceService
from shopcore.services.views import order_to_dict

router = APIRouter(prefix="/admin/orders", tags=["admin"])


@router.get("", response_model=OrderListOut)
def list_orders(
    order_status: str | None = Query(None, alias="orderStatus"),
    payment_status: str | None = Query(None, alias="paymentStatus"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    staff: str = Depends(require_staff),
    svc: OrderService = Depends(get_order_service),
):
    orders, total = svc.list_orders(order_status, payment_status, page, limit)
    return {
        "orders": [order_to_dict(o) for o in orders],
        "total": total,
        "page": page,
        "limit": limit,
        "pages": math.ceil(total / limit) if total else 0,
    }


@router.post("/sequence/sync", response_model=SequenceSyncOut)
def sync_sequence(
    staff: str = Depends(require_staff),
    svc: SequenceService = Depends(get_sequence_service),
):
    """Naprawa licznika numerow zamowien."""
    value = svc.sync_counter()
    return {"name": svc.name, "value": value}


@router.patch("/{order_id}/status", response_model=OrderOut)
def update_status(
    order_id: str,
    payload: StatusUpdateIn,
    staff: str = Depends(require_staff),
    svc: OrderService = Depends(get_order_service),
):
    return order_to_dict(svc.update_status(order_id, payload.order_status, staff=staff))


@router.patch("/{order_id}/shipping", response_model=OrderOut)
def update_shipping(
    order_id: str,
    payload: ShippingUpdateIn,
    staff: str = Depends(require_staff),
    svc: OrderService = Depends(get_order_service),
):
    order = svc.update_shipping(
        order_id,
        tracking_number=payload.tracking_number,
        carrier=payload.carrier,
        estimated_delivery=payload.estimated_delivery,
        staff=staff,
    )
    return order_to_dict(order)
