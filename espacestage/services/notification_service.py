"""
Email notifications.

Two events are notified:
- a company receives a new application on one of its offers
- a student's application is accepted or rejected

Dispatch is fire-and-forget: it happens after the triggering write has
committed and any failure is logged, never raised to the caller.
"""

import logging
from html import escape
from typing import Callable, Optional

import requests
from fastapi import Request

from espacestage.core.config import Settings

logger = logging.getLogger(__name__)


class Notifier:
    """Interface of the email-dispatch collaborator."""

    def application_received(self, company_email: str, company_name: Optional[str], student_name: str,
                             student_email: str, offer_title: str, message: Optional[str]) -> None:
        raise NotImplementedError

    def application_status_changed(self, student_email: str, student_name: str, offer_title: str,
                                   company_name: Optional[str], status: str) -> None:
        raise NotImplementedError


class ResendNotifier(Notifier):
    """
    Sends through the Resend HTTP API.

    Without an API key the emails are only logged, so local and test
    environments work with no provider account.
    """

    def __init__(self, settings: Settings):
        self.api_key = settings.resend_api_key
        self.api_url = settings.resend_api_url
        self.sender = settings.email_from
        self.timeout = settings.email_timeout_sec
        self.frontend_url = settings.frontend_url.split(",")[0].strip()

    def _send(self, to: str, subject: str, html: str) -> None:
        if not self.api_key:
            logger.info("Email not sent (no API key configured) to=%s subject=%r", to, subject)
            return

        response = requests.post(
            self.api_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            timeout=self.timeout,
        )
        response.raise_for_status()
        logger.info("Email sent to=%s subject=%r", to, subject)

    def application_received(self, company_email, company_name, student_name,
                             student_email, offer_title, message):
        subject = f"New application for {offer_title}"
        body = [
            f"<p>Hello {escape(company_name or '')},</p>",
            f"<p><strong>{escape(student_name)}</strong> ({escape(student_email)}) applied to "
            f"your offer <strong>{escape(offer_title)}</strong>.</p>",
        ]
        if message:
            body.append(f"<blockquote>{escape(message)}</blockquote>")
        body.append(f'<p><a href="{self.frontend_url}/entreprise/candidatures">Review applications</a></p>')
        self._send(company_email, subject, "\n".join(body))

    def application_status_changed(self, student_email, student_name, offer_title,
                                   company_name, status):
        if status == "accepted":
            subject = "Your application has been accepted!"
            verdict = "has been <strong>accepted</strong>. The company will contact you soon."
        else:
            subject = "Update on your application"
            verdict = "was not retained this time. Keep applying, other offers are waiting for you."
        html = (
            f"<p>Hello {escape(student_name)},</p>"
            f"<p>Your application to <strong>{escape(offer_title)}</strong> at "
            f"{escape(company_name or '')} {verdict}</p>"
            f'<p><a href="{self.frontend_url}/etudiant/candidatures">See my applications</a></p>'
        )
        self._send(student_email, subject, html)


def dispatch_safely(send: Callable[..., None], **kwargs) -> bool:
    """Call a notifier method; log and swallow any failure."""
    try:
        send(**kwargs)
        return True
    except Exception as e:
        logger.warning("Notification %s failed: %s", getattr(send, "__name__", send), e)
        return False


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier
