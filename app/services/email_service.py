"""
app/services/email_service.py

SMTP notification sent when a matching job completes.
"""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from collections.abc import Callable, Mapping
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import EmailSettings, get_email_settings

logger = logging.getLogger(__name__)

SMTPFactory = Callable[[str, int], smtplib.SMTP]


class EmailNotifier:
    """
    Sends completion e-mails with download links over SMTP + STARTTLS.

    A notifier without SMTP credentials is disabled: it logs and returns
    False instead of sending.
    """

    def __init__(
        self,
        settings: EmailSettings | None = None,
        *,
        smtp_factory: SMTPFactory = smtplib.SMTP,
    ) -> None:
        self._settings = settings or get_email_settings()
        self._smtp_factory = smtp_factory

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    def send_processing_complete(
        self,
        *,
        email: str,
        job_id: str,
        download_links: Mapping[str, str],
    ) -> bool:
        if not self.enabled:
            logger.info("Email notifications disabled; skipping job=%s recipient=%s", job_id, email)
            return False

        message = self.build_processing_complete_message(
            email=email,
            job_id=job_id,
            download_links=download_links,
        )
        settings = self._settings
        with self._smtp_factory(settings.host, settings.port) as server:
            if settings.use_tls:
                server.starttls(context=ssl.create_default_context())
            server.login(settings.user, settings.password)
            server.sendmail(message["From"], [email], message.as_string())
        logger.info("Completion email sent job=%s recipient=%s", job_id, email)
        return True

    def build_processing_complete_message(
        self,
        *,
        email: str,
        job_id: str,
        download_links: Mapping[str, str],
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = self._settings.sender or self._settings.user or ""
        message["To"] = email
        message["Subject"] = f"Your Excel Processing Job #{job_id} is Complete"

        items = []
        for key, label in (
            ("excel", "Download Excel Results"),
            ("success", "Download Success Log"),
            ("error", "Download Error Log"),
        ):
            link = download_links.get(key)
            if link:
                items.append(f'<li><a href="{html.escape(link, quote=True)}">{label}</a></li>')

        body = (
            "<h2>Excel Processing Complete</h2>"
            f"<p>Your job #{html.escape(job_id)} has been processed successfully.</p>"
            "<p>You can download the results using the following links:</p>"
            f"<ul>{''.join(items)}</ul>"
            "<p>Thank you for using our service!</p>"
        )
        message.attach(MIMEText(body, "html"))
        return message
