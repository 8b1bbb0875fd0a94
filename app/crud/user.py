import logging
from datetime import datetime, timezone
from uuid import UUID
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models.user import User

logger = logging.getLogger(__name__)


class UserCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_email(self, email: str) -> User | None:
        result = await self.session.execute(
            select(User).where(func.lower(User.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> User | None:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_verification_token(self, token: str) -> User | None:
        """Only returns the user while the token is still valid."""
        result = await self.session.execute(
            select(User).where(
                User.verification_token == token,
                User.verification_token_expires_at > datetime.now(timezone.utc),
            )
        )
        return result.scalar_one_or_none()

    async def create_user(self, user_data: dict) -> User:
        new_user = User(**user_data)
        self.session.add(new_user)
        # flush so the ID is populated; the service owns the commit
        await self.session.flush()
        return new_user

    async def list_users(self, *, role=None, skip: int = 0, limit: int = 50):
        stmt = select(User).order_by(User.created_at.desc()).offset(skip).limit(limit)
        if role is not None:
            stmt = stmt.where(User.role == role)
        result = await self.session.execute(stmt)
        return result.scalars().all()
