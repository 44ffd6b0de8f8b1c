import logging
from email.utils import parseaddr
from typing import Optional

import requests

from . import settings
from .schemas import DispatchResult

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def sender_identity(sender: str, name: Optional[str] = None) -> dict:
    """
    Builds the SendGrid `from` object.
    Accepts a bare address or 'Display Name <address>'; an explicit name wins.
    """
    parsed_name, address = parseaddr(sender)
    identity = {"email": address or sender}
    if name or parsed_name:
        identity["name"] = name or parsed_name
    return identity


class SendGridDispatcher:
    """Sends one HTML email per call through the SendGrid v3 API. Never raises on delivery errors."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        sender_name: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ):
        self.api_key = api_key
        self.sender = sender_identity(sender, sender_name)
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "SendGridDispatcher":
        return cls(
            api_key=settings.SENDGRID_API_KEY,
            sender=settings.SENDER_EMAIL,
            sender_name=settings.SENDER_NAME,
            timeout=settings.request_timeout(),
        )

    def close(self):
        self.session.close()

    def build_payload(self, recipient: str, subject: str, html: str) -> dict:
        return {
            "personalizations": [{"to": [{"email": recipient}]}],
            "from": self.sender,
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }

    def send(self, recipient: str, subject: str, html: str, study: str = "") -> DispatchResult:
        payload = self.build_payload(recipient, subject, html)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            response = self.session.post(
                SENDGRID_SEND_URL, json=payload, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            return DispatchResult(
                study=study,
                recipient=recipient,
                success=False,
                reason=f"{e} {e.response.text if e.response is not None else ''}".strip(),
                status_code=e.response.status_code if e.response is not None else None,
            )
        except requests.exceptions.RequestException as e:
            return DispatchResult(study=study, recipient=recipient, success=False, reason=str(e))

        return DispatchResult(
            study=study, recipient=recipient, success=True, status_code=response.status_code
        )
