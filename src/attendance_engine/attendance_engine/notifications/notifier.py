from __future__ import annotations

import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

from ..app_logger import get_logger
from .model import DeliveryResult, Notification

log = get_logger(__name__)


class Notifier(Protocol):
    def deliver(self, recipient: str, notification: Notification) -> DeliveryResult:
        raise NotImplementedError


@dataclass(frozen=True)
class SmtpSettings:
    host: str
    port: int = 587
    user: str = ""
    password: str = ""
    use_tls: bool = True
    mail_from: str = ""
    timeout: float = 10.0

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)


class SmtpNotifier(Notifier):
    """Plain-text email delivery over SMTP with a bounded socket timeout."""

    def __init__(self, settings: SmtpSettings):
        self._settings = settings

    def deliver(self, recipient: str, notification: Notification) -> DeliveryResult:
        s = self._settings
        message = EmailMessage()
        message["Subject"] = notification.subject
        message["From"] = s.mail_from or s.user
        message["To"] = recipient
        message.set_content(notification.body)

        try:
            with smtplib.SMTP(s.host, s.port, timeout=s.timeout) as server:
                if s.use_tls:
                    server.starttls()
                server.login(s.user, s.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            log.error("email delivery failed kind=%s to=%s: %s", notification.kind, recipient, e)
            return DeliveryResult.failure(recipient, str(e))
        return DeliveryResult.success(recipient)


class LogNotifier(Notifier):
    """Development notifier used when SMTP is not configured: writes the payload to the log."""

    def deliver(self, recipient: str, notification: Notification) -> DeliveryResult:
        log.warning("SMTP not configured, %s for %s: %s", notification.kind, recipient, notification.body)
        return DeliveryResult.success(recipient)


def build_notifier(settings: SmtpSettings) -> Notifier:
    if settings.configured:
        return SmtpNotifier(settings)
    return LogNotifier()
