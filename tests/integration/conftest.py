"""
Integration test fixtures: an in-process store app with overridden
dependencies (database session, caller identity, e-mail dispatcher).
"""

from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from libs.auth.dependencies import get_current_user, get_optional_user
from libs.common.emails.dispatcher import get_notification_dispatcher
from libs.db.session import get_async_db
from services.store_service.app.main import app as store_app


async def _store_client(db_session, dispatcher, identity) -> AsyncGenerator[AsyncClient, None]:
    store_app.dependency_overrides[get_async_db] = lambda: db_session
    store_app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    store_app.dependency_overrides[get_optional_user] = lambda: identity
    if identity is not None:
        store_app.dependency_overrides[get_current_user] = lambda: identity

    async with AsyncClient(
        transport=ASGITransport(app=store_app), base_url="http://test"
    ) as ac:
        yield ac

    store_app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_client(db_session, dispatcher, admin_identity):
    """Store app client acting as an admin."""
    async for ac in _store_client(db_session, dispatcher, admin_identity):
        yield ac


@pytest_asyncio.fixture
async def customer_client(db_session, dispatcher, customer_identity):
    """Store app client acting as a signed-in customer (no admin role)."""
    async for ac in _store_client(db_session, dispatcher, customer_identity):
        yield ac


@pytest_asyncio.fixture
async def anonymous_client(db_session, dispatcher):
    """Store app client with no bearer token."""
    async for ac in _store_client(db_session, dispatcher, None):
        yield ac
