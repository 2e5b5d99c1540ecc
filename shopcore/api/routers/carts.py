# shopcore/api/routers/carts.py
import uuid

from fastapi import APIRouter, Depends, Response

from shopcore.api.deps import get_cart_service, get_language
from shopcore.domain.schemas import CartItemIn, CartOut, CartUpdateIn
from shopcore.services.cart_service import CartService
from shopcore.services.views import cart_to_dict

router = APIRouter(prefix="/cart", tags=["cart"])


@router.get("/{session_id}", response_model=CartOut)
def get_cart(
    session_id: str,
    lang: str = Depends(get_language),
    svc: CartService = Depends(get_cart_service),
):
    """Zwraca koszyk sesji, nieznana sesja dostaje nowy pusty koszyk."""
    return svc.get_cart(session_id, lang)


@router.post("/add", response_model=CartOut)
def add_item(
    payload: CartItemIn,
    lang: str = Depends(get_language),
    svc: CartService = Depends(get_cart_service),
):
    session_id = payload.session_id or uuid.uuid4().hex
    cart = svc.add_item(session_id, payload.product_id, payload.quantity)
    return cart_to_dict(cart, lang)


@router.put("/update", response_model=CartOut)
def update_item(
    payload: CartUpdateIn,
    lang: str = Depends(get_language),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.update_item(payload.session_id, payload.product_id, payload.quantity)
    return cart_to_dict(cart, lang)


@router.delete("/{session_id}/items/{item_id}", response_model=CartOut)
def remove_item(
    session_id: str,
    item_id: int,
    lang: str = Depends(get_language),
    svc: CartService = Depends(get_cart_service),
):
    cart = svc.remove_item(session_id, item_id)
    return cart_to_dict(cart, lang)


@router.delete("/{session_id}", status_code=204)
def clear_cart(session_id: str, svc: CartService = Depends(get_cart_service)):
    svc.clear(session_id)
    return Response(status_code=204)
