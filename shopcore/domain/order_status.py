# shopcore/domain/order_status.py
from enum import Enum

from shopcore.domain.errors import IllegalTransition, InvalidOrderStatus


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# cancelled tylko przed wysylka, po wysylce to zwrot a nie cofniecie statusu
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

CANCELLABLE = {OrderStatus.PENDING, OrderStatus.PROCESSING}

# platnosc jeszcze nie zaksiegowana, mozna przejsc na paid
PAYABLE = {PaymentStatus.PENDING, PaymentStatus.FAILED}


def parse_order_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidOrderStatus(value) from None


def check_transition(current: str, target: OrderStatus) -> bool:
    """
    Zwraca False gdy status sie nie zmienia (no-op),
    True gdy przejscie jest dozwolone, rzuca IllegalTransition w pozostalych przypadkach.
    """
    current = OrderStatus(current)
    if current == target:
        return False
    if target not in TRANSITIONS[current]:
        raise IllegalTransition(current.value, target.value)
    return True
