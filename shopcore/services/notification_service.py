# shopcore/services/notification_service.py
import aiosmtplib
import requests

from shopcore.celery_worker import celery_app
from shopcore.data.models.order import OrderModel
from shopcore.data.models.product import ProductModel, localized
from shopcore.services.mailer import Mailer
from shopcore.utils.settings import ADMIN_EMAIL
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)

_STATUS_TEXT = {
    "en": {
        "pending": "Order received",
        "processing": "Order processing",
        "shipped": "Order shipped",
        "delivered": "Order delivered",
        "cancelled": "Order cancelled",
    },
    "no": {
        "pending": "Bestilling mottatt",
        "processing": "Bestilling behandles",
        "shipped": "Bestilling sendt",
        "delivered": "Bestilling levert",
        "cancelled": "Bestilling kansellert",
    },
}


def status_text(status: str, language: str = "en") -> str:
    return _STATUS_TEXT.get(language, _STATUS_TEXT["en"]).get(status, status)


class NotificationService:
    """
    Serwis do wysylania powiadomien.
    Uzywa Celery do asynchronicznego przetwarzania.
    Blad wyslania (np. broker nie dziala) jest tylko logowany, nigdy nie cofa zamowienia.
    """

    def __init__(self, admin_email: str | None = None):
        self.admin_email = admin_email if admin_email is not None else ADMIN_EMAIL

    def order_confirmation(self, order: OrderModel):
        lang = order.language
        subject = (
            f"Order Confirmation - {order.order_number}"
            if lang == "en"
            else f"Ordrebekreftelse - {order.order_number}"
        )
        self._dispatch(order.customer_email, subject, _order_summary(order))

    def admin_new_order(self, order: OrderModel):
        if not self.admin_email:
            return
        subject = f"New order {order.order_number} ({order.total} NOK)"
        self._dispatch(self.admin_email, subject, _order_summary(order))

    def low_stock(self, product: ProductModel):
        if not self.admin_email:
            return
        subject = f"Low stock: {product.display_name()} ({product.stock} left)"
        text = f"Product {product.id} (SKU {product.sku}) has {product.stock} units left."
        self._dispatch(self.admin_email, subject, text)

    def order_cancelled(self, order: OrderModel):
        lang = order.language
        subject = (
            f"Order Cancelled - {order.order_number}"
            if lang == "en"
            else f"Bestilling kansellert - {order.order_number}"
        )
        self._dispatch(order.customer_email, subject, _order_summary(order))
        if self.admin_email:
            self._dispatch(self.admin_email, f"Order {order.order_number} cancelled", _order_summary(order))

    def status_update(self, order: OrderModel):
        subject = f"{status_text(order.order_status, order.language)} - {order.order_number}"
        self._dispatch(order.customer_email, subject, _order_summary(order))

    def shipping_update(self, order: OrderModel):
        subject = f"{status_text('shipped', order.language)} - {order.order_number}"
        text = (
            f"{_order_summary(order)}\n\n"
            f"Carrier: {order.carrier or '-'}\n"
            f"Tracking number: {order.tracking_number or '-'}"
        )
        self._dispatch(order.customer_email, subject, text)

    def payment_confirmation(self, order: OrderModel):
        subject = f"Payment received - {order.order_number}"
        self._dispatch(order.customer_email, subject, _order_summary(order))

    @staticmethod
    def _dispatch(to: str, subject: str, text: str):
        try:
            send_email_task.delay(to, subject, text)
        except Exception as e:
            logger.warning(f"Notification dispatch failed ({subject!r} to {to}): {e}")


def _order_summary(order: OrderModel) -> str:
    lang = order.language
    lines = [
        f"Order: {order.order_number}",
        f"Status: {status_text(order.order_status, lang)}",
        "",
    ]
    for item in order.items:
        lines.append(f"{localized(item.name, lang)} x {item.quantity} - {item.price} NOK")
    lines += [
        "",
        f"Subtotal: {order.subtotal} NOK",
        f"Tax: {order.tax} NOK",
        f"Shipping: {order.shipping_fee} NOK",
        f"Total: {order.total} NOK",
    ]
    return "\n".join(lines)


@celery_app.task(
    name="shopcore.services.notification_service.send_email_task",
    autoretry_for=(requests.RequestException, aiosmtplib.SMTPException, OSError),
    retry_backoff=True,
    max_retries=3,
)
def send_email_task(to: str, subject: str, text: str):
    """
    Celery task - wysyla mail przez Resend/SMTP albo tylko loguje.
    """
    logger.info(f"[NOTIFICATION] {subject} -> {to}")
    channel = Mailer().send(to, subject, text)
    return {"to": to, "subject": subject, "channel": channel}
