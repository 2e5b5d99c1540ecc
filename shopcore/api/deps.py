# shopcore/api/deps.py
import hmac

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from shopcore.data.database import get_db
from shopcore.domain.errors import Forbidden, Unauthorized
from shopcore.services.cart_service import CartService
from shopcore.services.checkout_service import CheckoutService
from shopcore.services.lock_service import LockService
from shopcore.services.notification_service import NotificationService
from shopcore.services.order_service import OrderService
from shopcore.services.payment_gateway import PaymentGateway
from shopcore.services.payment_service import PaymentService
from shopcore.services.sequence_service import SequenceService
from shopcore.utils import settings
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = ("en", "no")


# --- zewnetrzne zaleznosci, w testach podmieniane przez dependency_overrides ---

def get_lock_service() -> LockService:
    return LockService()


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


def get_notifier() -> NotificationService:
    return NotificationService()


# --- serwisy ---

def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    return CartService(db)


def get_order_service(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, notifier=notifier)


def get_checkout_service(
    db: Session = Depends(get_db),
    lock_service: LockService = Depends(get_lock_service),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: NotificationService = Depends(get_notifier),
) -> CheckoutService:
    return CheckoutService(db, lock_service=lock_service, gateway=gateway, notifier=notifier)


def get_payment_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    order_service: OrderService = Depends(get_order_service),
) -> PaymentService:
    return PaymentService(db, gateway, notifier=order_service.notifier, order_service=order_service)


def get_sequence_service(db: Session = Depends(get_db)) -> SequenceService:
    return SequenceService(db)


# --- auth / jezyk ---

def _staff_tokens() -> dict[str, str]:
    # "alice:token1,bob:token2" -> {token: name}, czytane przy kazdym requescie
    tokens = {}
    for entry in settings.STAFF_API_TOKENS.split(","):
        name, sep, token = entry.strip().partition(":")
        if sep and name and token:
            tokens[token] = name
    return tokens


def require_staff(authorization: str | None = Header(None)) -> str:
    """Zwraca nazwe pracownika dla poprawnego tokenu Bearer."""
    if not authorization:
        raise Unauthorized("Authentication required")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Bearer token required")

    token = token.strip()
    for known, name in _staff_tokens().items():
        if hmac.compare_digest(known.encode(), token.encode()):
            return name

    logger.warning("Rejected staff request with unknown token")
    raise Forbidden("Staff access required")


def get_language(
    lang: str | None = Query(None),
    accept_language: str | None = Header(None),
) -> str:
    if lang and lang.lower() in SUPPORTED_LANGUAGES:
        return lang.lower()
    if accept_language:
        # "nb-NO,no;q=0.9,en;q=0.8" -> pierwszy obslugiwany
        for part in accept_language.split(","):
            code = part.split(";")[0].strip().lower()[:2]
            if code == "nb":
                code = "no"
            if code in SUPPORTED_LANGUAGES:
                return code
    return "en"
