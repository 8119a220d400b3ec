"""User lookup used to resolve actors and booking targets."""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.redis_client import CacheManager
from app.models.users import users
from app.schemas.users import Role, UserRecord


class UserService:
    """Read access to users, with optional caching."""

    # Cache TTL in seconds (30 minutes for user profiles)
    USER_CACHE_TTL = 1800

    def __init__(self, cache_manager: CacheManager | None = None):
        """Initialize service with optional cache manager."""
        self.cache = cache_manager

    @staticmethod
    def _get_user_cache_key(user_id: UUID) -> str:
        """Generate cache key for user."""
        return f"user:{user_id}"

    async def get_user_by_id(self, db: AsyncSession, user_id: UUID) -> UserRecord | None:
        """Get user by ID with caching."""
        if self.cache:
            cached_user = self.cache.get_json(self._get_user_cache_key(user_id))
            if cached_user:
                return UserRecord.model_validate(cached_user)

        result = await db.execute(select(users).where(users.c.id == user_id))
        row = result.mappings().first()

        if not row:
            return None

        user = UserRecord.model_validate(dict(row))

        if self.cache:
            self.cache.set_json(
                self._get_user_cache_key(user_id),
                user.model_dump(mode="json"),
                ttl=self.USER_CACHE_TTL,
            )

        return user

    async def create_user(
        self,
        db: AsyncSession,
        role: Role,
        first_name: str,
        last_name: str,
        phone_number: str | None = None,
        user_id: UUID | None = None,
    ) -> UserRecord:
        """Insert a user row. Used by seeding scripts and tests."""
        query = (
            users.insert()
            .values(
                id=user_id or uuid4(),
                role=role.value,
                first_name=first_name,
                last_name=last_name,
                phone_number=phone_number,
            )
            .returning(users)
        )

        result = await db.execute(query)
        await db.commit()
        row = result.mappings().first()

        if not row:
            raise ValueError("Failed to create user")

        return UserRecord.model_validate(dict(row))
