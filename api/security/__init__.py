import uuid
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from api.database import get_async_session
from api.errors import Forbidden, InternalError, Unauthorized
from api.models.user import User, UserRole
from config import ENV
env = ENV()
API_KEY = env.service_api_token

async def require_service(x_api_key: str | None = Header(None)):
    if not API_KEY:
        raise InternalError("API key not configured")
    if not x_api_key or x_api_key != API_KEY:
        raise Unauthorized("Invalid service key")
    return True


async def get_current_user(
    x_user_id: str | None = Header(None),
    session: AsyncSession = Depends(get_async_session),
) -> User:
    """Caller identity as asserted by the upstream auth layer."""
    if not x_user_id:
        raise Unauthorized("Missing X-User-Id header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise Unauthorized("Malformed X-User-Id header")
    user = await session.get(User, user_id)
    if not user:
        raise Unauthorized("Unknown user")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.admin:
        raise Forbidden("Admin access required")
    return user


async def require_seller(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.seller:
        raise Forbidden("Seller access required")
    return user
