# shopcore/services/mailer.py
import asyncio
from email.message import EmailMessage

import aiosmtplib
import requests

from shopcore.utils.retry import http_retry
from shopcore.utils.settings import (
    EMAIL_FROM,
    RESEND_API_KEY,
    RESEND_API_URL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USER,
)
from shopcore.utils.logging import get_logger

logger = get_logger(__name__)


class Mailer:
    """
    Wysylka maili transakcyjnych.
    Resend (HTTP) jesli jest klucz, inaczej SMTP, a bez konfiguracji tylko log.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        sender: str | None = None,
        smtp_host: str | None = None,
        timeout: int = 5,
    ):
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.api_url = api_url or RESEND_API_URL
        self.sender = sender or EMAIL_FROM
        self.smtp_host = smtp_host if smtp_host is not None else SMTP_HOST
        self.timeout = timeout

    def send(self, to: str, subject: str, text: str) -> str:
        if self.api_key:
            self._send_resend(to, subject, text)
            return "resend"
        if self.smtp_host:
            self._send_smtp(to, subject, text)
            return "smtp"

        logger.info(f"[EMAIL] (not configured) to={to} subject={subject!r}")
        return "logged"

    @http_retry()
    def _send_resend(self, to: str, subject: str, text: str):
        logger.info(f"Resend POST {self.api_url} to={to}")
        resp = requests.post(
            self.api_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": self.sender, "to": [to], "subject": subject, "text": text},
            timeout=self.timeout,
        )
        resp.raise_for_status()

    def _send_smtp(self, to: str, subject: str, text: str):
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text)

        logger.info(f"SMTP {self.smtp_host}:{SMTP_PORT} to={to}")
        # worker Celery jest synchroniczny, wiec klient async dostaje wlasna petle
        asyncio.run(
            aiosmtplib.send(
                msg,
                hostname=self.smtp_host,
                port=SMTP_PORT,
                username=SMTP_USER or None,
                password=SMTP_PASSWORD or None,
                start_tls=True,
                timeout=self.timeout,
            )
        )
