"""
Transactional e-mail provider clients.

Each provider exposes ``async send(message)`` that returns on success and
raises ``ExternalServiceFailure`` on any provider-side or transport error.
Providers never decide about fallback; that is the dispatcher's job.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.logging import get_logger

logger = get_logger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
RESEND_SEND_URL = "https://api.resend.com/emails"


@dataclass(frozen=True)
class EmailMessage:
    """A fully rendered outgoing e-mail."""

    to_address: str
    subject: str
    html_body: str
    text_body: str
    from_address: str
    from_name: str

    @property
    def sender(self) -> str:
        return f"{self.from_name} <{self.from_address}>"


class ExternalServiceFailure(Exception):
    """An e-mail provider was unreachable or rejected the message."""

    def __init__(
        self, message: str, provider: str, status_code: Optional[int] = None
    ):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(message)


class EmailProvider:
    """Base class for HTTP e-mail providers."""

    name = "provider"

    def __init__(
        self,
        api_key: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError(f"{self.name} API key is required")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _post(self, url: str, payload: dict) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with self._client() as client:
                response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise ExternalServiceFailure(
                f"Could not reach {self.name}: {e}", provider=self.name
            ) from e

        if not response.is_success:
            raise ExternalServiceFailure(
                f"{self.name} API error {response.status_code}: "
                f"{self._error_detail(response)}",
                provider=self.name,
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text or "no response body"
        if isinstance(data, dict):
            if "message" in data:
                return str(data["message"])
            errors = data.get("errors")
            if isinstance(errors, list) and errors:
                first = errors[0]
                if isinstance(first, dict) and "message" in first:
                    return str(first["message"])
        return str(data)

    async def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class SendGridProvider(EmailProvider):
    """SendGrid v3 mail/send API (primary provider)."""

    name = "sendgrid"

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "personalizations": [{"to": [{"email": message.to_address}]}],
            "from": {"email": message.from_address, "name": message.from_name},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text_body},
                {"type": "text/html", "value": message.html_body},
            ],
        }
        await self._post(SENDGRID_SEND_URL, payload)
        logger.info(f"SendGrid accepted email to {message.to_address}")


class ResendProvider(EmailProvider):
    """Resend e-mails API (secondary provider)."""

    name = "resend"

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": message.sender,
            "to": [message.to_address],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
        }
        response = await self._post(RESEND_SEND_URL, payload)
        data = response.json() if response.content else {}
        # Resend can answer 200 with an error object instead of an id
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            detail = error.get("message") if isinstance(error, dict) else str(error)
            raise ExternalServiceFailure(
                detail or "Unknown error from Resend", provider=self.name
            )
        message_id = data.get("id") if isinstance(data, dict) else None
        logger.info(f"Resend accepted email to {message.to_address} (id={message_id})")
