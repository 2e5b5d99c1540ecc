# shopcore/api/routers/checkout.py
from fastapi import APIRouter, Depends, Header, Response

from shopcore.api.deps import get_checkout_service, get_language
from shopcore.domain.schemas import CheckoutIn, OrderOut
from shopcore.services.checkout_service import CheckoutService
from shopcore.services.views import order_to_dict

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post("", response_model=OrderOut, status_code=201)
def checkout(
    payload: CheckoutIn,
    response: Response,
    idempotency_key: str | None = Header(None),
    lang: str = Depends(get_language),
    svc: CheckoutService = Depends(get_checkout_service),
):
    """
    Tworzy zamówienie z koszyka sesji.
    Ten sam Idempotency-Key zwraca istniejace zamowienie (200 zamiast 201).
    """
    result = svc.checkout(
        session_id=payload.session_id,
        customer=payload.customer.model_dump(),
        shipping_address=payload.shipping_address.model_dump(),
        payment_intent_id=payload.payment_intent_id,
        idempotency_key=idempotency_key.strip() if idempotency_key else None,
        language=lang,
        notes=payload.notes,
    )
    if result.replayed:
        response.status_code = 200
    return order_to_dict(result.order, lang)
