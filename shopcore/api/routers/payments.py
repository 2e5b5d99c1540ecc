# shopcore/api/routers/payments.py
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from shopcore.api.deps import get_language, get_payment_service, require_staff
from shopcore.domain.schemas import (
    ConfirmPaymentIn,
    CreateIntentIn,
    OrderOut,
    PaymentIntentOut,
    PaymentStatusOut,
    PaymentVerifyOut,
    RefundIn,
    RefundResultOut,
    WebhookAck,
)
from shopcore.services.payment_service import PaymentService
from shopcore.services.views import order_to_dict

router = APIRouter(prefix="/payments", tags=["payments"])

_FAILED_INTENT_STATUSES = {"requires_payment_method", "canceled", "failed"}


@router.post("/create-intent", response_model=PaymentIntentOut)
def create_intent(payload: CreateIntentIn, svc: PaymentService = Depends(get_payment_service)):
    intent = svc.create_intent(payload.order_id, payload.amount)
    return {
        "payment_intent_id": intent.id,
        "client_secret": intent.client_secret,
        "amount": intent.amount,
        "currency": intent.currency,
    }


@router.post("/confirm", response_model=OrderOut)
def confirm_payment(
    payload: ConfirmPaymentIn,
    lang: str = Depends(get_language),
    svc: PaymentService = Depends(get_payment_service),
):
    return order_to_dict(svc.confirm(payload.order_id, payload.payment_intent_id), lang)


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None),
    svc: PaymentService = Depends(get_payment_service),
):
    """
    Webhook Stripe - podpis liczony z surowego body, wiec bez parsowania przez pydantic.
    """
    payload = await request.body()
    event_type = await run_in_threadpool(svc.handle_webhook, payload, stripe_signature)
    return {"received": True, "type": event_type}


@router.post("/refund", response_model=RefundResultOut)
def refund(
    payload: RefundIn,
    staff: str = Depends(require_staff),
    svc: PaymentService = Depends(get_payment_service),
):
    order, refund_info = svc.refund(payload.payment_intent_id, payload.amount, payload.reason, staff=staff)
    return {
        "refund_id": refund_info.id,
        "amount": refund_info.amount,
        "status": refund_info.status,
        "reason": refund_info.reason,
        "order_number": order.order_number,
        "payment_status": order.payment_status,
    }


def _intent_to_dict(intent, order) -> dict:
    return {
        "payment_intent_id": intent.id,
        "status": intent.status,
        "amount": intent.amount,
        "currency": intent.currency.upper(),
        "created": intent.created,
        "order_number": order.order_number if order else None,
        "payment_status": order.payment_status if order else None,
    }


@router.get("/status/{payment_intent_id}", response_model=PaymentStatusOut)
def payment_status(payment_intent_id: str, svc: PaymentService = Depends(get_payment_service)):
    return _intent_to_dict(*svc.intent_status(payment_intent_id))


@router.get("/verify/{payment_intent_id}", response_model=PaymentVerifyOut)
def verify_payment(payment_intent_id: str, svc: PaymentService = Depends(get_payment_service)):
    """
    Sprawdzenie platnosci po powrocie ze Stripe - tylko odczyt, status zamowienia zmienia confirm albo webhook.
    """
    intent, order = svc.intent_status(payment_intent_id)
    return {
        **_intent_to_dict(intent, order),
        "is_successful": intent.status == "succeeded",
        "is_pending": intent.status == "processing",
        "is_failed": intent.status in _FAILED_INTENT_STATUSES,
        "metadata": intent.metadata,
    }
