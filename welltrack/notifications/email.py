"""Email delivery of health reports."""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from html import escape
from typing import Optional

from welltrack.config import Settings, get_settings
from welltrack.models.report import HealthReport
from welltrack.services.health_calculator import HealthCalculator
from welltrack.services.pdf_report import build_report_pdf, report_filename

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """The report email could not be sent."""


class ReportMailer:
    """Sends health reports over SMTP."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return bool(self.settings.smtp_host and self.settings.smtp_sender)

    def _text_body(self, report: HealthReport, share_link: str) -> str:
        category = HealthCalculator.score_category(report.health_score)
        lines = [
            f"Your {report.title} is ready.",
            "",
            f"Health Score: {report.health_score}/100 ({category})",
            f"Risk Level: {report.risk_level}",
            f"Activity Level: {report.activity_level}",
            "",
        ]
        if report.narrative_summary:
            lines += [report.narrative_summary, ""]
        lines += [
            f"View the full report online: {share_link}",
            "",
            "The PDF version is attached to this email.",
        ]
        return "\n".join(lines)

    def _html_body(self, report: HealthReport, share_link: str) -> str:
        category = HealthCalculator.score_category(report.health_score)
        narrative = f"<p>{escape(report.narrative_summary)}</p>" if report.narrative_summary else ""
        return f"""<html>
  <body style="font-family: Arial, sans-serif; color: #2c3e50;">
    <h2 style="color: #1a5f7a;">{escape(report.title)}</h2>
    <p style="font-size: 28px; margin: 8px 0;"><strong>{report.health_score}/100</strong></p>
    <p>Health Score: {escape(category)}</p>
    <table cellpadding="4">
      <tr><td>Risk Level</td><td><strong>{escape(report.risk_level)}</strong></td></tr>
      <tr><td>Activity Level</td><td><strong>{escape(report.activity_level)}</strong></td></tr>
    </table>
    {narrative}
    <p><a href="{escape(share_link)}" style="color: #1a5f7a;">View the full report online</a></p>
    <p style="color: #7f8c8d; font-size: 12px;">The PDF version is attached to this email.</p>
  </body>
</html>"""

    def build_message(
        self, report: HealthReport, to: str, share_link: str, pdf_bytes: bytes
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.settings.smtp_sender
        message["To"] = to
        message["Subject"] = f"Your WellTrack Health Report - {report.generated_at.strftime('%B %d, %Y')}"
        message.set_content(self._text_body(report, share_link))
        message.add_alternative(self._html_body(report, share_link), subtype="html")
        message.add_attachment(
            pdf_bytes,
            maintype="application",
            subtype="pdf",
            filename=report_filename(report),
        )
        return message

    def _send(self, message: EmailMessage) -> None:
        context = ssl.create_default_context()
        with smtplib.SMTP(self.settings.smtp_host, self.settings.smtp_port, timeout=10) as server:
            server.starttls(context=context)
            if self.settings.smtp_user and self.settings.smtp_password:
                server.login(self.settings.smtp_user, self.settings.smtp_password)
            server.send_message(message)

    async def send_report(
        self,
        report: HealthReport,
        to: str,
        share_link: str,
        pdf_bytes: Optional[bytes] = None,
    ) -> None:
        """Email a report with its PDF attached."""
        if not self.configured:
            raise EmailDeliveryError("SMTP settings not configured")

        if pdf_bytes is None:
            pdf_bytes = await asyncio.to_thread(build_report_pdf, report)
        message = self.build_message(report, to, share_link, pdf_bytes)

        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to email report %s to %s: %s", report.id, to, e)
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        logger.info("Emailed report %s to %s", report.id, to)
