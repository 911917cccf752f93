"""
Outbound email senders.

All variants build the same MIME message; only the transport differs. Send
failures raise EmailError and are swallowed by the notifier, never by the
senders themselves.
"""

from __future__ import annotations

import smtplib
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid
from typing import List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from config.settings import Settings
from utils.error_handling import EmailError
from utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class Attachment:
    filename: str
    content: bytes
    mimetype: str = "application/octet-stream"


def build_message(
    sender: str,
    to: str,
    subject: str,
    html: str,
    attachments: Optional[Sequence[Attachment]] = None,
) -> EmailMessage:
    """HTML email with optional attachments."""
    message = EmailMessage()
    message["From"] = sender
    message["To"] = to
    message["Subject"] = subject
    message["Message-ID"] = make_msgid()
    message.set_content("This message requires an HTML-capable email client.")
    message.add_alternative(html, subtype="html")
    for attachment in attachments or []:
        maintype, _, subtype = attachment.mimetype.partition("/")
        message.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype or "octet-stream",
            filename=attachment.filename,
        )
    return message


class EmailSender(ABC):
    """Email delivery capability."""

    def __init__(self, sender: str):
        self.sender = sender

    @abstractmethod
    def send(
        self,
        to: str,
        subject: str,
        html: str,
        attachments: Optional[Sequence[Attachment]] = None,
    ) -> str:
        """Deliver the message and return a provider message id.

        Raises:
            EmailError: If delivery failed.
        """
        ...


class LoggingEmailSender(EmailSender):
    """Development sender: records messages and logs instead of delivering."""

    def __init__(self, sender: str):
        super().__init__(sender)
        self.outbox: List[EmailMessage] = []

    def send(self, to, subject, html, attachments=None) -> str:
        message = build_message(self.sender, to, subject, html, attachments)
        self.outbox.append(message)
        message_id = f"log-{uuid.uuid4().hex[:12]}"
        logger.info("Email would be sent", extra={"to": to, "subject": subject, "message_id": message_id})
        return message_id


class SmtpEmailSender(EmailSender):
    """STARTTLS SMTP delivery."""

    def __init__(
        self,
        sender: str,
        host: str,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
    ):
        super().__init__(sender)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

    def send(self, to, subject, html, attachments=None) -> str:
        message = build_message(self.sender, to, subject, html, attachments)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailError(f"SMTP delivery failed: {exc}") from exc
        return message["Message-ID"]


class SesEmailSender(EmailSender):
    """Amazon SES delivery through send_raw_email (keeps attachments)."""

    def __init__(self, sender: str, region: Optional[str] = None, client=None, timeout: float = 10.0):
        super().__init__(sender)
        if client is None:
            config = Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 2})
            client = boto3.client("ses", region_name=region, config=config)
        self.client = client

    def send(self, to, subject, html, attachments=None) -> str:
        message = build_message(self.sender, to, subject, html, attachments)
        try:
            resp = self.client.send_raw_email(
                Source=self.sender,
                Destinations=[to],
                RawMessage={"Data": message.as_bytes()},
            )
        except (ClientError, BotoCoreError) as exc:
            raise EmailError(f"SES delivery failed: {exc}") from exc
        return resp.get("MessageId", "")


def build_email_sender(settings: Settings) -> EmailSender:
    """Instantiate the sender named by ``settings.email_provider``."""
    provider = settings.email_provider
    if provider == "smtp":
        if not settings.smtp_host:
            raise ValueError("SMTP_HOST is required for the smtp email provider")
        return SmtpEmailSender(
            settings.organizer_email,
            settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_pass,
            timeout=settings.http_timeout_seconds,
        )
    if provider == "ses":
        return SesEmailSender(
            settings.organizer_email,
            region=settings.ses_region,
            timeout=settings.http_timeout_seconds,
        )
    if provider == "log":
        return LoggingEmailSender(settings.organizer_email)
    raise ValueError(f"Unknown email provider: {provider}")
