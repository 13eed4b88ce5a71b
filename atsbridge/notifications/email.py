"""Assessment invitation emails (Resend HTTP API)."""

import html
import logging
from abc import ABC, abstractmethod
from datetime import datetime

import httpx

from atsbridge.errors import UpstreamProviderError
from atsbridge.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


def _first_name(candidate_name: str | None) -> str:
    parts = (candidate_name or "").split()
    return parts[0] if parts else "there"


def _hours_until(expires_at: datetime) -> int:
    return round((as_utc(expires_at) - utcnow()).total_seconds() / 3600)


def render_invite(
    candidate_name: str | None,
    assessment_url: str,
    expires_at: datetime,
    company_name: str | None = None,
    job_title: str | None = None,
) -> dict[str, str]:
    """Build subject, html and text bodies for an invitation email."""
    company = company_name or "A company"
    first_name = _first_name(candidate_name)
    expires_in = _hours_until(expires_at)
    subject = "Complete your AI Literacy Assessment" + (f" for {job_title}" if job_title else "")

    esc = html.escape
    role_html = (
        f" as part of your application for <strong>{esc(job_title)}</strong>" if job_title else ""
    )
    html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #6366f1;">Telescopic</h1>
  <p>Hi {esc(first_name)},</p>
  <p>{esc(company)} has invited you to complete an AI Literacy Assessment{role_html}.</p>
  <p>This assessment evaluates your ability to effectively collaborate with AI tools.</p>
  <ul>
    <li>~15-20 minutes to complete</li>
    <li>Real-world AI collaboration scenarios</li>
    <li>No right or wrong answers</li>
  </ul>
  <p><a href="{esc(assessment_url)}" style="background: #6366f1; color: white; padding: 14px 28px; text-decoration: none; border-radius: 6px;">Start Assessment</a></p>
  <p style="color: #666; font-size: 14px;">This link expires in {expires_in} hours.</p>
  <p style="color: #999; font-size: 12px;">You're receiving this because {esc(company)} invited you to complete an assessment via Telescopic.</p>
</body>
</html>"""

    text_body = "\n".join(
        [
            f"Hi {first_name},",
            "",
            f"{company} has invited you to complete an AI Literacy Assessment"
            + (f" for {job_title}" if job_title else "")
            + ".",
            "",
            "This assessment evaluates your ability to effectively collaborate with AI tools.",
            "",
            "What to expect:",
            "- ~15-20 minutes to complete",
            "- Real-world AI collaboration scenarios",
            "- No right or wrong answers",
            "",
            f"Start your assessment: {assessment_url}",
            "",
            f"This link expires in {expires_in} hours.",
            "",
            "---",
            f"You're receiving this because {company} invited you via Telescopic.",
        ]
    )
    return {"subject": subject, "html": html_body, "text": text_body}


class EmailSender(ABC):
    @abstractmethod
    async def send_invite(
        self,
        to: str,
        candidate_name: str | None,
        assessment_url: str,
        expires_at: datetime,
        company_name: str | None = None,
        job_title: str | None = None,
    ) -> None:
        """Send an invitation email. Raises on delivery failure."""


class ResendEmailSender(EmailSender):
    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout
        self.transport = transport

    async def send_invite(
        self,
        to: str,
        candidate_name: str | None,
        assessment_url: str,
        expires_at: datetime,
        company_name: str | None = None,
        job_title: str | None = None,
    ) -> None:
        message = render_invite(candidate_name, assessment_url, expires_at, company_name, job_title)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"from": self.from_email, "to": [to], **message},
                )
        except httpx.HTTPError as exc:
            raise UpstreamProviderError("resend", None, str(exc) or type(exc).__name__) from exc
        if response.is_error:
            raise UpstreamProviderError("resend", response.status_code, response.text)
        email_id = response.json().get("id") if response.content else None
        logger.info("Assessment invite sent to %s, email id: %s", to, email_id)


class LoggingEmailSender(EmailSender):
    """Used when no Resend API key is configured; logs instead of sending."""

    async def send_invite(
        self,
        to: str,
        candidate_name: str | None,
        assessment_url: str,
        expires_at: datetime,
        company_name: str | None = None,
        job_title: str | None = None,
    ) -> None:
        logger.info("Email delivery not configured; invite for %s not sent (%s)", to, assessment_url)


def build_email_sender(settings) -> EmailSender:
    if settings.resend_api_key:
        return ResendEmailSender(
            settings.resend_api_key,
            settings.resend_from_email,
            timeout=settings.provider_timeout_seconds,
        )
    return LoggingEmailSender()
