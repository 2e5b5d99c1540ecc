# shopcore/services/payment_gateway.py
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

import stripe

from shopcore.domain.errors import InvalidSignature, UpstreamError, ValidationError
from shopcore.domain.money import from_minor_units, to_minor_units
from shopcore.utils.retry import stripe_retry
from shopcore.utils.settings import CURRENCY, STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PaymentIntentInfo:
    id: str
    status: str
    amount: Decimal
    currency: str
    client_secret: str | None = None
    created: datetime | None = None
    metadata: dict = field(default_factory=dict)


@dataclass
class RefundInfo:
    id: str
    amount: Decimal
    currency: str
    status: str
    reason: str | None
    created: datetime


class PaymentGateway:
    """Cienka warstwa nad Stripe, zwraca nasze dataclassy zamiast obiektow SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        currency: str | None = None,
    ):
        self.api_key = api_key or STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or STRIPE_WEBHOOK_SECRET
        self.currency = (currency or CURRENCY).lower()

    # --- payment intents ---

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentInfo:
        logger.info(f"Stripe retrieve payment intent {payment_intent_id}")
        with _translate_errors():
            intent = self._retrieve(payment_intent_id)
        return _intent_info(intent)

    def create_payment_intent(self, amount: Decimal, metadata: dict) -> PaymentIntentInfo:
        logger.info(f"Stripe create payment intent amount={amount} {self.currency}")
        with _translate_errors():
            intent = self._create(to_minor_units(amount), metadata)
        return _intent_info(intent)

    def create_refund(
        self,
        payment_intent_id: str,
        amount: Decimal | None = None,
        reason: str | None = None,
    ) -> RefundInfo:
        logger.info(f"Stripe refund {payment_intent_id} amount={amount or 'full'}")
        params = {
            "payment_intent": payment_intent_id,
            "reason": reason or "requested_by_customer",
        }
        if amount is not None:
            params["amount"] = to_minor_units(amount)

        with _translate_errors():
            refund = self._refund(params)

        return RefundInfo(
            id=refund.id,
            amount=from_minor_units(refund.amount),
            currency=refund.currency,
            status=refund.status,
            reason=refund.reason,
            created=datetime.fromtimestamp(refund.created, tz=timezone.utc),
        )

    @stripe_retry()
    def _retrieve(self, payment_intent_id: str):
        return stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self.api_key)

    @stripe_retry()
    def _create(self, amount_minor: int, metadata: dict):
        return stripe.PaymentIntent.create(
            amount=amount_minor,
            currency=self.currency,
            automatic_payment_methods={"enabled": True},
            metadata=metadata,
            api_key=self.api_key,
        )

    @stripe_retry()
    def _refund(self, params: dict):
        return stripe.Refund.create(api_key=self.api_key, **params)

    # --- webhooks ---

    def construct_event(self, payload: bytes, signature: str | None) -> dict:
        """
        Weryfikacja podpisu webhooka.
        Zwraca zwykly dict z eventem, rzuca InvalidSignature zanim cokolwiek zostanie odczytane z bazy.
        """
        if not signature or not self.webhook_secret:
            logger.warning("Webhook rejected: missing signature or webhook secret")
            raise InvalidSignature()

        try:
            # UnicodeDecodeError to tez ValueError
            body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
            event = stripe.Webhook.construct_event(body, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise InvalidSignature() from e
        return event.to_dict()


def _intent_info(intent) -> PaymentIntentInfo:
    created = getattr(intent, "created", None)
    metadata = getattr(intent, "metadata", None)
    return PaymentIntentInfo(
        id=intent.id,
        status=intent.status,
        amount=from_minor_units(intent.amount),
        currency=intent.currency,
        client_secret=getattr(intent, "client_secret", None),
        created=datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
        metadata=metadata.to_dict() if metadata else {},
    )


@contextmanager
def _translate_errors():
    # bledy SDK -> nasze wyjatki domenowe
    try:
        yield
    except stripe.InvalidRequestError as e:
        raise ValidationError(f"Payment provider rejected request: {e.user_message or e}") from e
    except stripe.StripeError as e:
        logger.error(f"Stripe error: {e}")
        raise UpstreamError(f"Payment provider error: {e.user_message or e}") from e
