# shopcore/domain/errors.py
"""
Wyjatki domenowe.
Kazdy blad ma staly kod (reason) i status HTTP, handler w main.py zamienia je na JSON.
"""
from typing import Any, Dict


class ShopError(Exception):
    status_code = 500
    reason = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any):
        self.message = message
        self.details: Dict[str, Any] = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "message": self.message,
            "details": self.details,
        }


# --- 400 ---

class ValidationError(ShopError):
    status_code = 400
    reason = "VALIDATION_ERROR"


class InvalidOrderStatus(ValidationError):
    reason = "INVALID_ORDER_STATUS"

    def __init__(self, status: str):
        super().__init__(f"Invalid order status: {status}", status=status)


class InvalidSignature(ValidationError):
    reason = "INVALID_SIGNATURE"

    def __init__(self):
        super().__init__("Webhook signature verification failed")


# --- 401 / 403 ---

class Unauthorized(ShopError):
    status_code = 401
    reason = "UNAUTHORIZED"


class Forbidden(ShopError):
    status_code = 403
    reason = "FORBIDDEN"


# --- 404 ---

class NotFound(ShopError):
    status_code = 404
    reason = "NOT_FOUND"


class ProductNotFound(NotFound):
    reason = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", product_id=product_id)


class CartNotFound(NotFound):
    reason = "CART_NOT_FOUND"

    def __init__(self, session_id: str):
        super().__init__("Cart not found", session_id=session_id)


class ItemNotInCart(NotFound):
    reason = "ITEM_NOT_IN_CART"

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} is not in the cart", product_id=product_id)


class OrderNotFound(NotFound):
    reason = "ORDER_NOT_FOUND"

    def __init__(self, reference: str):
        super().__init__("Order not found", order=reference)


# --- konflikty stanu ---

class Conflict(ShopError):
    status_code = 409
    reason = "CONFLICT"


class OutOfStock(Conflict):
    status_code = 400
    reason = "OUT_OF_STOCK"

    def __init__(self, product_id: int, available: int, requested: int, name: str | None = None):
        label = name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: available {available}, requested {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )


class ProductInactive(Conflict):
    status_code = 400
    reason = "PRODUCT_INACTIVE"

    def __init__(self, product_id: int, name: str | None = None):
        label = name or f"Product {product_id}"
        super().__init__(f"{label} is no longer available", product_id=product_id)


class EmptyCart(Conflict):
    status_code = 400
    reason = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart is empty")


class PaymentNotCompleted(Conflict):
    status_code = 400
    reason = "PAYMENT_NOT_COMPLETED"

    def __init__(self, payment_intent_id: str, status: str):
        super().__init__(
            f"Payment not completed. Status: {status}",
            payment_intent_id=payment_intent_id,
            status=status,
        )


class PaymentAmountMismatch(Conflict):
    status_code = 400
    reason = "PAYMENT_AMOUNT_MISMATCH"

    def __init__(self, expected, actual):
        super().__init__(
            f"Payment amount mismatch. Expected: {expected}, Paid: {actual}",
            expected=str(expected),
            actual=str(actual),
        )


class RefundExceedsBalance(Conflict):
    status_code = 400
    reason = "REFUND_EXCEEDS_BALANCE"

    def __init__(self, refundable, requested):
        super().__init__(
            f"Refund amount exceeds refundable balance: refundable {refundable}, requested {requested}",
            refundable=str(refundable),
            requested=str(requested),
        )


class DuplicatePayment(Conflict):
    reason = "DUPLICATE_PAYMENT"

    def __init__(self, payment_intent_id: str):
        super().__init__(
            "Payment is already attached to another order",
            payment_intent_id=payment_intent_id,
        )


class AlreadyPaid(Conflict):
    status_code = 400
    reason = "ALREADY_PAID"

    def __init__(self, order_number: str):
        super().__init__("Order already paid", order=order_number)


class RefundNotAllowed(Conflict):
    reason = "REFUND_NOT_ALLOWED"

    def __init__(self, order_number: str, payment_status: str):
        super().__init__(
            f"Cannot refund order with payment status: {payment_status}",
            order=order_number,
            payment_status=payment_status,
        )


class IllegalTransition(Conflict):
    reason = "ILLEGAL_TRANSITION"

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot change order status from {current} to {target}",
            current=current,
            target=target,
        )


class CartConflict(Conflict):
    reason = "CART_CONFLICT"

    def __init__(self, session_id: str):
        super().__init__(
            "Cart was modified by another request, retry",
            session_id=session_id,
        )


class CheckoutInProgress(Conflict):
    reason = "CHECKOUT_IN_PROGRESS"

    def __init__(self, session_id: str):
        super().__init__(
            "Checkout for this cart is already in progress",
            session_id=session_id,
        )


# --- zewnetrzne ---

class UpstreamError(ShopError):
    status_code = 502
    reason = "UPSTREAM_ERROR"
