"""Send transactional email (password reset links)."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import get_settings

logger = logging.getLogger("gatekeep")


class EmailSender:
    """Interface for outbound email."""

    def send(self, to: str, subject: str, html_body: str) -> None:
        raise NotImplementedError


class SMTPEmailSender(EmailSender):
    """Delivers mail through an SMTP relay configured via SMTP_* settings."""

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10,
    ) -> None:
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.host:
            raise RuntimeError("SMTP_HOST is not configured")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.sendmail(self.from_address, [to], msg.as_string())


class ConsoleEmailSender(EmailSender):
    """Writes mail to the server log instead of sending it. Development only."""

    def send(self, to: str, subject: str, html_body: str) -> None:
        logger.info("EMAIL to=%s subject=%s\n%s", to, subject, html_body)


def get_email_sender() -> EmailSender:
    """Pick the email sender for the current settings.

    Outside development an unconfigured relay still gets the SMTP sender, so delivery fails loudly
    instead of reset links landing in the log.
    """
    settings = get_settings()
    if not settings.SMTP_HOST and settings.APP_ENV == "development":
        return ConsoleEmailSender()
    return SMTPEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        from_address=settings.MAIL_FROM,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT,
    )
