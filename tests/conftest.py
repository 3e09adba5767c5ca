"""
Shared store fixtures: caller identities and e-mail dispatchers.

Dispatchers are real ``NotificationDispatcher`` instances whose HTTP calls go
to an ``httpx.MockTransport``, so provider payloads and fallback are
exercised without any network access.
"""

import json

import httpx
import pytest
import pytest_asyncio
from libs.auth.models import AuthUser
from libs.common.emails.dispatcher import EmailConfig, NotificationDispatcher
from services.store_service.models import UserRole
from tests.factories import UserFactory


class MailOutbox:
    """Records provider requests and answers with a configurable status."""

    def __init__(self, status_code: int = 202):
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "api.resend.com" and self.status_code < 300:
            return httpx.Response(200, json={"id": "re_test"})
        if self.status_code >= 300:
            return httpx.Response(
                self.status_code, json={"errors": [{"message": "provider down"}]}
            )
        return httpx.Response(self.status_code)

    @property
    def payloads(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


def _dispatcher(outbox: MailOutbox, **config) -> NotificationDispatcher:
    return NotificationDispatcher(
        EmailConfig(**config), transport=httpx.MockTransport(outbox.handler)
    )


@pytest.fixture
def outbox() -> MailOutbox:
    return MailOutbox()


@pytest.fixture
def dispatcher(outbox) -> NotificationDispatcher:
    """SendGrid-configured dispatcher that accepts everything."""
    return _dispatcher(outbox, sendgrid_api_key="SG.test")


@pytest.fixture
def failing_dispatcher() -> NotificationDispatcher:
    """Both providers configured, both answer 500."""
    return _dispatcher(
        MailOutbox(status_code=500),
        sendgrid_api_key="SG.test",
        resend_api_key="re_test",
    )


@pytest_asyncio.fixture
async def admin_identity(db_session) -> AuthUser:
    user = UserFactory.create(id="admin-user", role=UserRole.ADMIN)
    db_session.add(user)
    await db_session.commit()
    return AuthUser(user_id=user.id, email=user.email)


@pytest_asyncio.fixture
async def customer_identity(db_session) -> AuthUser:
    user = UserFactory.create(id="customer-user", email="buyer@example.com")
    db_session.add(user)
    await db_session.commit()
    return AuthUser(user_id=user.id, email=user.email)
