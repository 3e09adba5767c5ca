"""
Notification Dispatcher: best-effort transactional e-mail with provider fallback.

The dispatcher tries the primary provider (SendGrid) and falls back to the
secondary provider (Resend) when the primary is unconfigured or fails. It
never raises: every outcome, including "nothing configured", comes back as a
``DispatchResult`` so callers can record the attempt and carry on.

Usage:
    from libs.common.emails.dispatcher import get_notification_dispatcher

    dispatcher = get_notification_dispatcher()
    result = await dispatcher.send(
        to_address="buyer@example.com",
        subject="Your Order is Ready",
        html_body="<p>...</p>",
        text_body="...",
    )
    if not result.success:
        logger.warning(result.error)
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
from libs.common.config import Settings, get_settings
from libs.common.emails.providers import (
    EmailMessage,
    EmailProvider,
    ExternalServiceFailure,
    ResendProvider,
    SendGridProvider,
)
from libs.common.logging import get_logger
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = get_logger(__name__)

NO_PROVIDER_ERROR = (
    "No email service configured. Please set up SendGrid or Resend API keys."
)


@dataclass(frozen=True)
class EmailConfig:
    """Provider credentials and sender identity, resolved once per process."""

    sendgrid_api_key: Optional[str] = None
    resend_api_key: Optional[str] = None
    from_address: str = "orders@theturkishshop.com"
    from_name: str = "The Turkish Shop"
    timeout_seconds: float = 30.0
    max_attempts: int = 1
    retry_backoff_seconds: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            sendgrid_api_key=settings.SENDGRID_API_KEY,
            resend_api_key=settings.RESEND_API_KEY,
            from_address=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
            timeout_seconds=settings.EMAIL_TIMEOUT_SECONDS,
            max_attempts=settings.EMAIL_MAX_ATTEMPTS,
            retry_backoff_seconds=settings.EMAIL_RETRY_BACKOFF_SECONDS,
        )


@dataclass(frozen=True)
class DispatchResult:
    """Uniform outcome of a send attempt."""

    success: bool
    error: Optional[str] = None
    provider: Optional[str] = None


class NotificationDispatcher:
    """Send e-mail through the first provider that accepts it."""

    def __init__(
        self,
        config: EmailConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.providers = self._build_providers(config, transport)

    @staticmethod
    def _build_providers(
        config: EmailConfig, transport: Optional[httpx.AsyncBaseTransport]
    ) -> list[EmailProvider]:
        providers: list[EmailProvider] = []
        if config.sendgrid_api_key:
            providers.append(
                SendGridProvider(
                    config.sendgrid_api_key,
                    timeout=config.timeout_seconds,
                    transport=transport,
                )
            )
        if config.resend_api_key:
            providers.append(
                ResendProvider(
                    config.resend_api_key,
                    timeout=config.timeout_seconds,
                    transport=transport,
                )
            )
        return providers

    @property
    def is_configured(self) -> bool:
        return bool(self.providers)

    async def send(
        self,
        to_address: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> DispatchResult:
        """
        Send one e-mail, falling back across providers.

        Returns:
            DispatchResult(success=True, provider=...) on the first accepted send,
            otherwise DispatchResult(success=False, error=...). Never raises.
        """
        if not self.providers:
            logger.warning(f"Email to {to_address} not sent: {NO_PROVIDER_ERROR}")
            return DispatchResult(success=False, error=NO_PROVIDER_ERROR)

        message = EmailMessage(
            to_address=to_address,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            from_address=self.config.from_address,
            from_name=self.config.from_name,
        )

        errors: list[str] = []
        for provider in self.providers:
            try:
                await self._send_with_retries(provider, message)
            except Exception as e:
                logger.error(
                    f"Email provider {provider.name} failed for {to_address}: "
                    f"{type(e).__name__}: {e}"
                )
                errors.append(str(e))
                continue
            return DispatchResult(success=True, provider=provider.name)

        return DispatchResult(success=False, error="; ".join(errors))

    async def _send_with_retries(
        self, provider: EmailProvider, message: EmailMessage
    ) -> None:
        """Retry one provider on delivery failures; the last error is re-raised."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.max_attempts)),
            wait=wait_exponential(
                multiplier=self.config.retry_backoff_seconds, max=10
            ),
            retry=retry_if_exception_type(ExternalServiceFailure),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                await provider.send(message)


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcher:
    """Build the process-wide dispatcher from settings (FastAPI dependency)."""
    return NotificationDispatcher(EmailConfig.from_settings(get_settings()))
