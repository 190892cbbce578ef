"""SMTP email delivery for alerts."""

from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from prober.config import Settings

logger = logging.getLogger(__name__)


class EmailSender:
    def __init__(
        self,
        host: str = "",
        port: int = 587,
        user: str = "",
        password: str = "",
        sender: str = "",
        recipient: str = "",
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.recipient = recipient

    @classmethod
    def from_settings(cls, s: Settings) -> EmailSender:
        return cls(
            host=s.smtp_host,
            port=s.smtp_port,
            user=s.smtp_user,
            password=s.smtp_password,
            sender=s.alert_sender,
            recipient=s.alert_recipient,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.recipient)

    def send(self, subject: str, body: str) -> None:
        """Send one plain-text message. Blocking; raises on any SMTP error."""
        msg = MIMEText(body, "plain", "utf-8")
        msg["From"] = self.sender
        msg["To"] = self.recipient
        msg["Subject"] = subject

        with smtplib.SMTP(self.host, self.port, timeout=30) as server:
            server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(msg)
        logger.info("Alert email sent to %s", self.recipient)
