#!/usr/bin/env python3
"""Insert demo users and print bearer tokens for them."""

import asyncio
from datetime import timedelta

from app.core.security import create_access_token
from app.database import AsyncSessionLocal, engine
from app.schemas.users import Role
from app.services.user_service import UserService

DEMO_USERS = [
    (Role.PATIENT, "Anna", "Nowak", "+48500100200"),
    (Role.PATIENT, "Jan", "Kowalski", "+48500100300"),
    (Role.DOCTOR, "Ewa", "Lis", None),
    (Role.RECEPTIONIST, "Piotr", "Wozniak", None),
]


async def seed() -> None:
    """Create the demo users."""
    service = UserService()

    async with AsyncSessionLocal() as session:
        for role, first_name, last_name, phone in DEMO_USERS:
            user = await service.create_user(session, role, first_name, last_name, phone)
            token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(days=7))
            print(f"{role.value:<13} {first_name} {last_name}  id={user.id}")
            print(f"  Authorization: Bearer {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
