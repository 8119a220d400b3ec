"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import UnauthorizedException
from app.core.redis_client import CacheManager, get_redis_client
from app.core.security import decode_access_token
from app.database import get_db
from app.schemas.users import Actor
from app.services.appointment_service import AppointmentService
from app.services.user_service import UserService

# Security
security = HTTPBearer(auto_error=False)

_system_clock = SystemClock()


def get_cache_manager() -> CacheManager | None:
    """Cache manager when Redis is enabled, otherwise None."""
    if not settings.redis_enabled:
        return None
    return CacheManager(get_redis_client())


def get_clock() -> Clock:
    """Clock used for past-date checks and timestamps."""
    return _system_clock


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> UUID:
    """
    Extract and validate user ID from JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        User ID from token

    Raises:
        UnauthorizedException: If token is missing, invalid or expired
    """
    if credentials is None:
        raise UnauthorizedException("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise UnauthorizedException()

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise UnauthorizedException()

    try:
        return UUID(user_id_str)
    except ValueError:
        raise UnauthorizedException("Invalid user ID format") from None


async def get_current_actor(
    user_id: Annotated[UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
) -> Actor:
    """
    Resolve the caller's role from the users table.

    Raises:
        UnauthorizedException: If the user no longer exists
    """
    user = await UserService(cache_manager).get_user_by_id(db, user_id)

    if user is None:
        raise UnauthorizedException("User not found")

    return user.as_actor()


def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    cache_manager: Annotated[CacheManager | None, Depends(get_cache_manager)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AppointmentService:
    """Appointment service bound to the request's session."""
    return AppointmentService(db, cache_manager=cache_manager, clock=clock)


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AppointmentServiceDep = Annotated[AppointmentService, Depends(get_appointment_service)]
