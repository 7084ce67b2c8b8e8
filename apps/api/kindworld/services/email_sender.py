"""Email sender interface + Resend implementation + selection helper."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from kindworld.core.config import settings
from kindworld.services.audit_service import hash_email
from kindworld.services.errors import DeliveryFailure

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"


class EmailSender(Protocol):
    key: str

    async def send(
        self,
        *,
        to_email: str,
        subject: str,
        html: str,
        text: str | None = None,
        idempotency_key: str | None = None,
    ) -> str | None:
        """Send one email. Returns the provider message id; raises DeliveryFailure."""


class ResendEmailSender:
    """Send email through the Resend HTTP API."""

    key = "resend"

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.from_email = from_email or settings.EMAIL_FROM
        self.timeout = timeout or settings.DELIVERY_SEND_TIMEOUT_SECONDS

    def is_configured(self) -> bool:
        return bool(self.api_key) and bool((self.from_email or "").strip())

    async def send(
        self,
        *,
        to_email: str,
        subject: str,
        html: str,
        text: str | None = None,
        idempotency_key: str | None = None,
    ) -> str | None:
        if not self.api_key:
            raise DeliveryFailure("Email sender not configured (missing RESEND_API_KEY)")
        if not to_email:
            raise DeliveryFailure("Recipient has no email address")

        payload: dict[str, object] = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": html,
        }
        if text:
            payload["text"] = text

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(RESEND_SEND_URL, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise DeliveryFailure(f"Resend request failed: {exc.__class__.__name__}") from exc

        if 200 <= response.status_code < 300:
            data = response.json()
            message_id = data.get("id") if isinstance(data, dict) else None
            logger.info("Email sent to %s (message_id=%s)", hash_email(to_email), message_id)
            return message_id

        # 409 = idempotency conflict, the message already went out
        if response.status_code == 409:
            logger.info("Email already sent to %s (idempotent replay)", hash_email(to_email))
            return None

        detail = None
        try:
            data = response.json()
            if isinstance(data, dict):
                detail = data.get("message") or data.get("error")
        except ValueError:
            detail = None

        if detail:
            raise DeliveryFailure(f"Resend API error: {response.status_code} ({detail})")
        raise DeliveryFailure(f"Resend API error: {response.status_code}")


class LogEmailSender:
    """Dry-run sender: logs instead of sending (no API key configured)."""

    key = "log"

    async def send(
        self,
        *,
        to_email: str,
        subject: str,
        html: str,
        text: str | None = None,
        idempotency_key: str | None = None,
    ) -> str | None:
        logger.info(
            "Dry-run email to %s: %s (idempotency_key=%s)",
            hash_email(to_email),
            subject,
            idempotency_key,
        )
        return None


@dataclass(frozen=True)
class SenderSelection:
    sender: EmailSender
    dry_run: bool


def select_sender() -> SenderSelection:
    """Resend when an API key is configured, otherwise the dry-run logger."""
    resend = ResendEmailSender()
    if resend.is_configured():
        return SenderSelection(sender=resend, dry_run=False)
    logger.warning("RESEND_API_KEY not set; emails will be logged, not sent")
    return SenderSelection(sender=LogEmailSender(), dry_run=True)
