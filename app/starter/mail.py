from __future__ import annotations

import logging
import smtplib
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)


class MailError(RuntimeError):
    pass


class MailClient:
    """
    Plain-text mail over SMTP, configured from SMTP_* / EMAIL_FROM.
    Without SMTP_SERVER the message is only logged (development).
    """

    def __init__(self, config: dict) -> None:
        self.server = (config.get("SMTP_SERVER") or "").strip()
        self.port = (str(config.get("SMTP_PORT") or "")).strip()
        self.use_tls = bool(config.get("SMTP_USE_TLS", True))
        self.username = (config.get("SMTP_USERNAME") or "").strip()
        self.password = (config.get("SMTP_PASSWORD") or "").strip()
        self.sender = (config.get("EMAIL_FROM") or "").strip()

    def send(self, to: str, subject: str, body: str) -> None:
        if not self.server:
            logger.info("SMTP_SERVER not configured; mail to %s not sent. Subject: %s\n%s", to, subject, body)
            return
        if not self.sender:
            raise MailError("Email from address not configured (EMAIL_FROM environment variable missing)")

        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to

        try:
            server = smtplib.SMTP(self.server, int(self.port)) if self.port else smtplib.SMTP(self.server)
            try:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
            finally:
                server.quit()
        except smtplib.SMTPException as e:
            raise MailError(f"SMTP error: {e}") from e
        logger.info("Sent email to %s with subject: %s", to, subject)


def mail_client() -> MailClient:
    client = current_app.extensions.get("mail_client")
    if client is None:
        client = MailClient(current_app.config)
        current_app.extensions["mail_client"] = client
    return client
