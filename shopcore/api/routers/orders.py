# shopcore/api/routers/orders.py
from typing import List

from fastapi import APIRouter, Depends, Query

from shopcore.api.deps import get_language, get_order_service
from shopcore.domain.schemas import CancelIn, OrderOut, TrackingOut
from shopcore.services.order_service import OrderService
from shopcore.services.views import order_to_dict, tracking_to_dict

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("/track/{order_id}", response_model=TrackingOut)
def track_order(
    order_id: str,
    lang: str = Depends(get_language),
    svc: OrderService = Depends(get_order_service),
):
    """Publiczne sledzenie zamowienia - tylko status i historia."""
    return tracking_to_dict(svc.get_order(order_id), lang)


@router.get("/lookup", response_model=List[OrderOut])
def lookup_orders(
    email: str = Query(..., min_length=3, max_length=254),
    lang: str = Depends(get_language),
    svc: OrderService = Depends(get_order_service),
):
    """Zamowienia klienta po adresie email, najnowsze pierwsze."""
    return [order_to_dict(order, lang) for order in svc.lookup_by_email(email)]


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: str,
    lang: str = Depends(get_language),
    svc: OrderService = Depends(get_order_service),
):
    """
    Pobiera szczegóły zamówienia po numerze (ALX-2025-0001) albo id.
    """
    return order_to_dict(svc.get_order(order_id), lang)


@router.post("/{order_id}/cancel", response_model=OrderOut)
def cancel_order(
    order_id: str,
    payload: CancelIn,
    lang: str = Depends(get_language),
    svc: OrderService = Depends(get_order_service),
):
    return order_to_dict(svc.cancel_by_customer(order_id, payload.email), lang)
