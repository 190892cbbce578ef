"""Alert delivery — Slack and Telegram webhooks, plus SMTP email.

Called by probe implementations' ``alert()``. Unlike fire-and-forget
notifications, an alert must report whether anybody actually got it:
``send_alert`` raises AlertDeliveryError unless at least one channel
accepted the message, so the probe runner knows to retry next cycle.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from prober.config import settings
from prober.core.errors import AlertDeliveryError
from prober.core.records import Record
from prober.notifications.email import EmailSender

logger = logging.getLogger(__name__)


def format_alert(name: str, description: str, badness: int, records: list[Record]) -> str:
    """Render the alert body shared by every channel."""
    lines = [
        f"🔴 *Probe Alert* — `{name}`",
        f"The probe failed enough that this alert fired: badness is {badness}.",
    ]
    if description:
        lines.append(f"Description: {description}")
    if records:
        lines.append("Recent failures:")
        for r in records:
            lines.append(f"• {r.time_millis} ({r.ago()}): {r.details}")
    return "\n".join(lines) + "\n"


class AlertNotifier:
    """Dispatches probe alerts to every configured channel."""

    def __init__(
        self,
        slack_webhook: str = "",
        telegram_token: str = "",
        telegram_chat_id: str = "",
        email: EmailSender | None = None,
    ) -> None:
        self.slack_webhook = slack_webhook or settings.slack_webhook_url
        self.telegram_token = telegram_token or settings.telegram_bot_token
        self.telegram_chat_id = telegram_chat_id or settings.telegram_chat_id
        self.email = email if email is not None else EmailSender.from_settings(settings)

    @property
    def is_enabled(self) -> bool:
        return bool(self.slack_webhook or self._telegram_configured or self.email.is_configured)

    @property
    def _telegram_configured(self) -> bool:
        return bool(self.telegram_token and self.telegram_chat_id)

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self.is_enabled,
            "slack_configured": bool(self.slack_webhook),
            "telegram_configured": self._telegram_configured,
            "email_configured": self.email.is_configured,
        }

    async def send_alert(
        self, name: str, description: str, badness: int, records: list[Record],
    ) -> None:
        """Deliver one alert. Raises AlertDeliveryError if no channel accepted it."""
        if not self.is_enabled:
            raise AlertDeliveryError("no alert channel configured")

        text = format_alert(name, description, badness, records)
        sends = []
        if self.slack_webhook:
            sends.append(self._send_slack(text))
        if self._telegram_configured:
            sends.append(self._send_telegram(text))
        if self.email.is_configured:
            sends.append(self._send_email(f"[prober] {name} is alerting (badness {badness})", text))

        results = await asyncio.gather(*sends)
        if not any(results):
            raise AlertDeliveryError(f"all {len(results)} alert channel(s) failed for {name}")
        logger.info("Alert for %s delivered on %d/%d channel(s)", name, sum(results), len(results))

    # -- Low-level dispatch -------------------------------------------------

    async def _send_slack(self, text: str) -> bool:
        """POST to Slack incoming webhook."""
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(
                    self.slack_webhook,
                    json={"text": text, "mrkdwn": True},
                )
                if resp.status_code != 200:
                    logger.warning("Slack webhook returned %d: %s", resp.status_code, resp.text[:200])
                    return False
                return True
        except Exception as exc:
            logger.warning("Slack notification failed: %s", exc)
            return False

    async def _send_telegram(self, text: str) -> bool:
        """POST to Telegram Bot API."""
        url = f"https://api.telegram.org/bot{self.telegram_token}/sendMessage"
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                resp = await client.post(
                    url,
                    json={
                        "chat_id": self.telegram_chat_id,
                        "text": text,
                        "parse_mode": "Markdown",
                    },
                )
                if resp.status_code != 200:
                    logger.warning("Telegram API returned %d: %s", resp.status_code, resp.text[:200])
                    return False
                return True
        except Exception as exc:
            logger.warning("Telegram notification failed: %s", exc)
            return False

    async def _send_email(self, subject: str, body: str) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self.email.send, subject, body)
            return True
        except Exception as exc:
            logger.warning("Email notification failed: %s", exc)
            return False


# -- Singleton -----------------------------------------------------------------

_notifier: AlertNotifier | None = None


def get_notifier() -> AlertNotifier:
    """Return the process-level alert notifier."""
    global _notifier
    if _notifier is None:
        _notifier = AlertNotifier()
    return _notifier
