"""Mail notifications about new records and failed runs."""

import asyncio
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from string import Template
from typing import List, Optional

import structlog

from offerwatch.config import settings

logger = structlog.get_logger(__name__)


class MailNotifier:
    """Sends templated mail to every configured recipient.

    Templates use string.Template placeholders: $new_records_count and
    $source for new records, $source and $error_message for errors.
    One message is sent per recipient; a failing recipient is logged and
    does not stop the others.
    """

    def __init__(
        self,
        enabled: Optional[bool] = None,
        recipients: Optional[List[str]] = None,
        sender: Optional[str] = None,
    ):
        self.enabled = settings.SEND_MAIL if enabled is None else enabled
        self.recipients = settings.get_mail_recipients() if recipients is None else recipients
        self.sender = sender or settings.MAIL_FROM or settings.SMTP_USER
        self.logger = logger.bind(service="mail_notifier")

    async def notify_new_records(self, source: str, count: int) -> int:
        """Announce new records. Returns the number of messages sent."""
        variables = {"new_records_count": count, "source": source}
        return await self._send(
            Template(settings.MAIL_NEW_RECORDS_SUBJECT).safe_substitute(variables),
            Template(settings.MAIL_NEW_RECORDS_BODY).safe_substitute(variables),
        )

    async def notify_error(self, source: str, error: str) -> int:
        variables = {"source": source, "error_message": error}
        return await self._send(
            Template(settings.MAIL_ERROR_SUBJECT).safe_substitute(variables),
            Template(settings.MAIL_ERROR_BODY).safe_substitute(variables),
        )

    async def _send(self, subject: str, html: str) -> int:
        if not self.enabled:
            self.logger.debug("mail_disabled", subject=subject)
            return 0
        if not self.recipients:
            self.logger.warning("mail_recipients_not_configured")
            return 0

        sent = 0
        for recipient in self.recipients:
            try:
                await asyncio.to_thread(self._deliver, recipient, subject, html)
            except (smtplib.SMTPException, OSError) as e:
                self.logger.error("mail_send_failed", recipient=recipient, error=str(e))
                continue
            sent += 1
            self.logger.info("mail_sent", recipient=recipient)
        return sent

    def _deliver(self, recipient: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.attach(MIMEText(html, "html", "utf-8"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(self.sender, [recipient], msg.as_string())
