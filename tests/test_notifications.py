"""Tests for notifications and mail delivery."""

from decimal import Decimal

import aiosmtplib
import pytest
import requests

from shopcore.data.models.order import OrderModel
from shopcore.data.models.order_item import OrderItemModel
from shopcore.services import mailer as mailer_module
from shopcore.services import notification_service
from shopcore.services.mailer import Mailer
from shopcore.services.notification_service import NotificationService, send_email_task, status_text


def _order(language="en"):
    return OrderModel(
        order_number="ALX-2025-0001",
        customer_name="Kari",
        customer_email="kari@example.com",
        customer_phone="12345",
        order_status="shipped",
        language=language,
        subtotal=Decimal("100.00"),
        tax=Decimal("25.00"),
        shipping_fee=Decimal("0.00"),
        total=Decimal("125.00"),
        carrier="Posten",
        tracking_number="TRK1",
        items=[OrderItemModel(product_id=1, name={"en": "Mug", "no": "Kopp"}, sku="M", quantity=1, price=Decimal("100.00"))],
    )


class FakeResponse:
    def __init__(self, status=200):
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"status {self.status}")


class TestStatusText:
    def test_languages(self):
        assert status_text("shipped", "en") == "Order shipped"
        assert status_text("shipped", "no") == "Bestilling sendt"
        assert status_text("shipped", "de") == "Order shipped"


class TestNotificationService:
    def test_dispatch_failure_is_swallowed(self, monkeypatch):
        def broken(*args, **kwargs):
            raise ConnectionError("broker down")

        monkeypatch.setattr(send_email_task, "delay", broken)
        NotificationService(admin_email="admin@example.com").order_confirmation(_order())

    def test_dispatch_enqueues_task(self, monkeypatch):
        calls = []
        monkeypatch.setattr(send_email_task, "delay", lambda *args: calls.append(args))

        NotificationService(admin_email="admin@example.com").order_cancelled(_order("no"))

        assert [c[0] for c in calls] == ["kari@example.com", "admin@example.com"]
        assert calls[0][1].startswith("Bestilling kansellert")
        assert "Kopp x 1" in calls[0][2]

    def test_shipping_mail_has_tracking(self, monkeypatch):
        calls = []
        monkeypatch.setattr(send_email_task, "delay", lambda *args: calls.append(args))

        NotificationService().shipping_update(_order())
        assert "TRK1" in calls[0][2]

    def test_admin_mails_skipped_without_address(self, monkeypatch):
        calls = []
        monkeypatch.setattr(send_email_task, "delay", lambda *args: calls.append(args))

        NotificationService(admin_email="").admin_new_order(_order())
        assert calls == []


class TestMailer:
    def test_log_only_without_config(self):
        assert Mailer(api_key="", smtp_host="").send("a@example.com", "Hi", "text") == "logged"

    def test_resend(self, monkeypatch):
        sent = {}

        def fake_post(url, headers, json, timeout):
            sent.update(url=url, headers=headers, json=json)
            return FakeResponse()

        monkeypatch.setattr(requests, "post", fake_post)
        mailer = Mailer(api_key="re_test", api_url="https://resend.test/emails", sender="shop@example.com")

        assert mailer.send("a@example.com", "Hi", "text") == "resend"
        assert sent["headers"]["Authorization"] == "Bearer re_test"
        assert sent["json"]["to"] == ["a@example.com"]

    def test_resend_error_raises_after_retries(self, monkeypatch):
        attempts = []

        def fake_post(*args, **kwargs):
            attempts.append(1)
            return FakeResponse(status=500)

        monkeypatch.setattr(requests, "post", fake_post)
        with pytest.raises(requests.HTTPError):
            Mailer(api_key="re_test").send("a@example.com", "Hi", "text")
        assert len(attempts) == 3

    def test_task_uses_mailer(self, monkeypatch):
        monkeypatch.setattr(notification_service, "Mailer", lambda: Mailer(api_key="", smtp_host=""))
        result = send_email_task.run("a@example.com", "Hi", "text")
        assert result == {"to": "a@example.com", "subject": "Hi", "channel": "logged"}

    def test_smtp_delivery(self, monkeypatch):
        sent = {}

        async def fake_send(message, **kwargs):
            sent.update(message=message, **kwargs)
            return {}, "250 OK"

        monkeypatch.setattr(mailer_module.aiosmtplib, "send", fake_send)
        monkeypatch.setattr(mailer_module, "SMTP_USER", "")
        mailer = Mailer(api_key="", smtp_host="smtp.example.com", sender="shop@example.com")

        assert mailer.send("a@example.com", "Hi", "text") == "smtp"
        assert sent["hostname"] == "smtp.example.com"
        assert sent["start_tls"] is True
        assert sent["username"] is None
        assert sent["message"]["To"] == "a@example.com"
        assert sent["message"].get_content().strip() == "text"

    def test_smtp_error_propagates_for_task_retry(self, monkeypatch):
        async def refused(message, **kwargs):
            raise aiosmtplib.SMTPConnectError("connection refused")

        monkeypatch.setattr(mailer_module.aiosmtplib, "send", refused)
        with pytest.raises(aiosmtplib.SMTPException):
            Mailer(api_key="", smtp_host="smtp.example.com").send("a@example.com", "Hi", "text")
