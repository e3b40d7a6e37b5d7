from dataclasses import dataclass
from typing import Optional, Tuple

import httpx
import structlog

from boxtracker.core.time_utils import format_utc
from boxtracker.models.report import Report, ReportType

logger = structlog.get_logger()


@dataclass
class Notification:
    sent: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


def render_report_email(report: Report) -> Tuple[str, str]:
    """
    Build (subject, text body) for a report notification.
    """
    label = report.label or report.box_id
    report_type = ReportType(report.report_type)

    subject = "New Toys for Tots Report"
    if report_type.is_pickup:
        subject = f"Toys for Tots PICKUP REQUEST: {label}"
    elif report_type.is_problem:
        subject = f"Toys for Tots PROBLEM REPORT: {label}"

    address = ", ".join(p for p in (report.address, report.city) if p) or "N/A"
    body = (
        "A new report was submitted:\n"
        "\n"
        f"Box ID: {report.box_id}\n"
        f"Location: {report.label or 'N/A'}\n"
        f"Address: {address}\n"
        f"Assigned Volunteer: {report.volunteer or 'N/A'}\n"
        "\n"
        "--- Report Details ---\n"
        f"Type: {report_type.value}\n"
        f"Description: {report.description or 'N/A'}\n"
        f"Notes: {report.notes or 'N/A'}\n"
        f"Contact: {report.reporter_name or 'None'} <{report.reporter_email or 'None'}>\n"
        f"Timestamp: {format_utc(report.created_at)}\n"
        f"Database Record ID: {report.id}\n"
    )
    return subject, body


class ReportNotifier:
    """
    Sends report emails through the Mailgun HTTP API.
    Fire-and-log: failures are returned as Notification(sent=False), never raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        domain: str,
        recipient: str,
        base_url: str = "https://api.mailgun.net/v3",
        timeout: float = 10.0,
    ):
        self.client = client
        self.api_key = api_key
        self.domain = domain
        self.recipient = recipient
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def notify(self, report: Report) -> Notification:
        if not self.api_key or not self.domain:
            logger.warning("report_email_skipped", reason="mail_not_configured", report_id=str(report.id))
            return Notification(sent=False, error="Email delivery is not configured.")

        subject, body = render_report_email(report)
        try:
            resp = await self.client.post(
                f"{self.base_url}/{self.domain}/messages",
                auth=("api", self.api_key),
                data={
                    "from": f"Tots Box Bot <bot@{self.domain}>",
                    "to": self.recipient,
                    "subject": subject,
                    "text": body,
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            message_id = resp.json().get("id")
        except (httpx.HTTPError, ValueError) as e:
            logger.error("report_email_failed", report_id=str(report.id), error=str(e))
            return Notification(sent=False, error="Failed to send notification email.")

        logger.info("report_email_sent", report_id=str(report.id), message_id=message_id)
        return Notification(sent=True, message_id=message_id)
