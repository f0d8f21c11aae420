import asyncio
import smtplib

import pytest

from welltrack.config import Settings
from welltrack.notifications.email import EmailDeliveryError, ReportMailer

from tests.test_pdf_report import make_report

SHARE_LINK = "https://welltrack.example/shared-report/abc"


def mailer(**overrides):
    values = dict(
        supabase_url="http://localhost:54321",
        supabase_key="test-key",
        smtp_host="smtp.example.com",
        smtp_sender="WellTrack <reports@example.com>",
    )
    values.update(overrides)
    return ReportMailer(settings=Settings(**values))


def test_unconfigured_mailer_refuses_to_send():
    unconfigured = mailer(smtp_host="")
    assert unconfigured.configured is False
    with pytest.raises(EmailDeliveryError):
        asyncio.run(unconfigured.send_report(make_report(), "asha@example.com", SHARE_LINK, b"%PDF"))


def test_build_message_has_html_and_pdf_attachment():
    message = mailer().build_message(make_report(), "asha@example.com", SHARE_LINK, b"%PDF-1.4 test")

    assert message["To"] == "asha@example.com"
    assert message["Subject"] == "Your WellTrack Health Report - October 05, 2026"

    html = message.get_body(preferencelist=("html",)).get_content()
    assert SHARE_LINK in html
    assert "steady &amp; your sleep" in html

    text = message.get_body(preferencelist=("plain",)).get_content()
    assert "Health Score: 75/100 (Good)" in text

    attachments = list(message.iter_attachments())
    assert len(attachments) == 1
    assert attachments[0].get_filename() == "WellTrack-Health-Report-2026-10-05.pdf"
    assert attachments[0].get_content_type() == "application/pdf"
    assert attachments[0].get_content() == b"%PDF-1.4 test"


def test_send_report_hands_message_to_smtp(monkeypatch):
    sent = []
    service = mailer()
    monkeypatch.setattr(service, "_send", sent.append)

    asyncio.run(service.send_report(make_report(), "asha@example.com", SHARE_LINK))

    assert len(sent) == 1
    attachment = next(sent[0].iter_attachments())
    assert attachment.get_content().startswith(b"%PDF")


@pytest.mark.parametrize("error", [OSError("connection refused"), smtplib.SMTPAuthenticationError(535, b"bad")])
def test_send_failures_become_delivery_errors(monkeypatch, error):
    service = mailer()

    def fail(message):
        raise error

    monkeypatch.setattr(service, "_send", fail)
    with pytest.raises(EmailDeliveryError):
        asyncio.run(service.send_report(make_report(), "asha@example.com", SHARE_LINK, b"%PDF"))
