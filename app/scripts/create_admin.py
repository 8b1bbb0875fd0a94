import asyncio
import logging
import os

from app.core.logging import setup_logging
from app.core.security import hash_password
from app.crud.user import UserCRUD
from app.db.enums import UserRole
from app.db.sessions import get_async_session

logger = logging.getLogger(__name__)


async def create_super_admin():
    password = os.environ.get("ADMIN_PASSWORD")
    if not password:
        raise RuntimeError("ADMIN_PASSWORD env var not set")

    email = os.environ.get("ADMIN_EMAIL", "admin@example.com").lower()
    full_name = os.environ.get("ADMIN_NAME", "System Admin")

    async for session in get_async_session():
        user_crud = UserCRUD(session)

        if await user_crud.get_by_email(email):
            logger.info(f"Admin already exists: {email}")
            return

        # Seeded admins skip the email verification step
        await user_crud.create_user(
            {
                "full_name": full_name,
                "email": email,
                "hashed_password": hash_password(password),
                "role": UserRole.ADMIN,
                "is_active": True,
                "is_email_verified": True,
            }
        )
        await session.commit()
        logger.info(f"Successfully created admin: {email}")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(create_super_admin())
