"""
Email sender tests with smtplib and SES mocked.

Run with: pytest tests/unit/test_email_service.py -v
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from config.settings import Settings
from services.email_service import (
    Attachment,
    LoggingEmailSender,
    SesEmailSender,
    SmtpEmailSender,
    build_email_sender,
    build_message,
)
from utils.error_handling import EmailError

SENDER = "billets@afaris.com"


def test_build_message_has_html_and_attachment():
    message = build_message(
        SENDER, "a@example.com", "Subject", "<p>Hi</p>",
        attachments=[Attachment("ticket.png", b"\x89PNG", "image/png")],
    )
    assert message["From"] == SENDER
    assert message["Message-ID"]
    assert message.get_body(preferencelist=("html",)).get_content().strip() == "<p>Hi</p>"
    attachment = next(message.iter_attachments())
    assert attachment.get_content_type() == "image/png"
    assert attachment.get_content() == b"\x89PNG"


def test_logging_sender_records_outbox():
    sender = LoggingEmailSender(SENDER)
    message_id = sender.send("a@example.com", "Subject", "<p>Hi</p>")
    assert message_id.startswith("log-")
    assert sender.outbox[0]["Subject"] == "Subject"


@patch("services.email_service.smtplib.SMTP")
def test_smtp_sender_uses_starttls_and_login(mock_smtp):
    smtp = mock_smtp.return_value.__enter__.return_value
    sender = SmtpEmailSender(SENDER, "smtp.example.com", 587, "user", "pass", timeout=3)

    sender.send("a@example.com", "Subject", "<p>Hi</p>")

    mock_smtp.assert_called_once_with("smtp.example.com", 587, timeout=3)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("user", "pass")
    smtp.send_message.assert_called_once()


@patch("services.email_service.smtplib.SMTP")
def test_smtp_failure_raises_email_error(mock_smtp):
    mock_smtp.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("boom")
    with pytest.raises(EmailError):
        SmtpEmailSender(SENDER, "smtp.example.com").send("a@example.com", "S", "<p>Hi</p>")


def test_ses_sender_sends_raw_email():
    client = MagicMock()
    client.send_raw_email.return_value = {"MessageId": "ses-1"}
    sender = SesEmailSender(SENDER, client=client)

    assert sender.send("a@example.com", "S", "<p>Hi</p>") == "ses-1"
    kwargs = client.send_raw_email.call_args.kwargs
    assert kwargs["Destinations"] == ["a@example.com"]
    assert b"Subject: S" in kwargs["RawMessage"]["Data"]


def test_ses_failure_raises_email_error():
    client = MagicMock()
    client.send_raw_email.side_effect = ClientError(
        {"Error": {"Code": "MessageRejected", "Message": "no"}}, "SendRawEmail"
    )
    with pytest.raises(EmailError):
        SesEmailSender(SENDER, client=client).send("a@example.com", "S", "<p>Hi</p>")


class TestBuildEmailSender:
    def test_default_is_logging(self):
        assert isinstance(build_email_sender(Settings()), LoggingEmailSender)

    def test_smtp_requires_host(self):
        with pytest.raises(ValueError):
            build_email_sender(Settings(email_provider="smtp"))
        sender = build_email_sender(Settings(email_provider="smtp", smtp_host="smtp.example.com"))
        assert isinstance(sender, SmtpEmailSender)

    def test_ses(self):
        assert isinstance(build_email_sender(Settings(email_provider="ses", ses_region="eu-west-3")), SesEmailSender)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_email_sender(Settings(email_provider="pigeon"))
