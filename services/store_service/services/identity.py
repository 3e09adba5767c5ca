"""Identity Gate: application-level admin check backed by the users table."""

from typing import Optional

from libs.auth.models import AuthUser
from libs.common.errors import Unauthorized
from libs.common.logging import get_logger
from services.store_service.models import User, UserRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ADMIN_REQUIRED = "Unauthorized: Admin access required"


async def is_admin(db: AsyncSession, identity: Optional[AuthUser]) -> bool:
    """Return True only when the caller's stored user record has role admin.

    Fails closed: no identity or no user record means not an admin.
    """
    if identity is None:
        return False
    result = await db.execute(select(User.role).where(User.id == identity.user_id))
    role = result.scalar_one_or_none()
    return role == UserRole.ADMIN


async def require_admin(db: AsyncSession, identity: Optional[AuthUser]) -> AuthUser:
    """Raise Unauthorized unless the caller is an admin."""
    if not await is_admin(db, identity):
        caller = identity.user_id if identity else "anonymous"
        logger.warning(f"Admin check failed for {caller}")
        raise Unauthorized(ADMIN_REQUIRED)
    return identity
