"""SMTP helpers for customer restock emails and merchant reports."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import List, Optional, Sequence

from merchant_app.core.config import Settings, get_settings
from merchant_app.core.templates import render_email
from merchant_app.core.utils import chunked

logger = logging.getLogger(__name__)

BCC_BATCH_SIZE = 50


class EmailService:
    """Lightweight SMTP helper. Bulk sends go out BCC in batches of 50."""

    def __init__(self, settings: Settings):
        self._settings = settings

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def send_restock_email(self, *, product_name: str, recipients: Sequence[str]) -> int:
        """Tell wishlist subscribers ``product_name`` is back in stock.

        Returns the number of batches that were sent successfully.
        """
        subject = "Item from your wishlist now in stock !"
        body_text = f"New {product_name} in stock!"
        body_html = render_email(
            "restock.html",
            store_name=self._settings.STORE_NAME,
            product_name=product_name,
            product_link=self._settings.PRODUCT_LINK,
        )
        return await self.send_bcc_batches(subject, recipients, body_text, body_html)

    async def send_store_value_report(self, *, shop: str, location_id: str, value: float, calculated_at: str) -> bool:
        recipient = self._settings.STORE_VALUE_NOTIFY_EMAIL
        if not recipient:
            return False
        subject = f"{self._settings.STORE_NAME} stock value: {value:,.2f}"
        body_text = f"Shop: {shop}\nLocation: {location_id}\nTotal value: {value:,.2f}\nCalculated {calculated_at}"
        body_html = render_email(
            "store_value.html",
            store_name=self._settings.STORE_NAME,
            shop=shop,
            location_id=location_id,
            value=value,
            calculated_at=calculated_at,
        )
        message = self._build_message(subject, body_text, body_html, to_addresses=[recipient])
        return await self._dispatch(message)

    async def send_bcc_batches(
        self,
        subject: str,
        recipients: Sequence[str],
        body_text: str,
        body_html: Optional[str] = None,
    ) -> int:
        if not self._ready():
            logger.warning("SMTP configuration incomplete; '%s' not sent", subject)
            return 0

        addresses = self._clean_recipients(recipients)
        if not addresses:
            logger.warning("No recipients for '%s'; skipping email", subject)
            return 0

        sent = 0
        for batch in chunked(addresses, BCC_BATCH_SIZE):
            message = self._build_message(subject, body_text, body_html, bcc_addresses=batch)
            if await self._dispatch(message):
                sent += 1
        return sent

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _ready(self) -> bool:
        settings = self._settings
        return bool(settings.SMTP_HOST and settings.SMTP_USERNAME and settings.SMTP_PASSWORD)

    @staticmethod
    def _clean_recipients(recipients: Sequence[str]) -> List[str]:
        seen = []
        for email in recipients:
            if email and email.strip() and email.strip() not in seen:
                seen.append(email.strip())
        return seen

    def _build_message(
        self,
        subject: str,
        body_text: str,
        body_html: Optional[str] = None,
        to_addresses: Optional[Sequence[str]] = None,
        bcc_addresses: Optional[Sequence[str]] = None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self._formatted_from_address
        # BCC batches are addressed to the sender so recipients stay hidden
        message["To"] = ", ".join(to_addresses) if to_addresses else self._from_email
        if bcc_addresses:
            message["Bcc"] = ", ".join(bcc_addresses)
        message.set_content(body_text)
        if body_html:
            message.add_alternative(body_html, subtype="html")
        return message

    @property
    def _from_email(self) -> str:
        return self._settings.SMTP_FROM_EMAIL or self._settings.SMTP_USERNAME

    @property
    def _formatted_from_address(self) -> str:
        from_name = self._settings.SMTP_FROM_NAME or self._settings.STORE_NAME
        return formataddr((from_name, self._from_email))

    async def _dispatch(self, message: EmailMessage) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, message)
            logger.info("Email '%s' sent", message["Subject"])
            return True
        except Exception as exc:  # pragma: no cover - logged for observability
            logger.error("Failed to send email '%s': %s", message["Subject"], exc, exc_info=True)
            return False

    def _send_sync(self, message: EmailMessage) -> None:
        settings = self._settings
        host = settings.SMTP_HOST
        port = settings.SMTP_PORT or (465 if settings.SMTP_USE_SSL else 587)
        timeout = settings.SMTP_TIMEOUT

        if settings.SMTP_USE_SSL:
            smtp = smtplib.SMTP_SSL(host=host, port=port, timeout=timeout)
        else:
            smtp = smtplib.SMTP(host=host, port=port, timeout=timeout)
        try:
            if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
                smtp.starttls()

            smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            # send_message strips the Bcc header but still delivers to it
            smtp.send_message(message)
        finally:
            try:
                smtp.quit()
            except Exception:
                smtp.close()


def get_email_service() -> EmailService:
    """Factory for dependency injection."""

    return EmailService(get_settings())
