import json
import logging
from typing import Dict, List
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.cart import CartItem

logger = logging.getLogger(__name__)


class CartCRUD:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _key(self, user_id: UUID) -> str:
        return f"cart:{user_id}"

    # REDIS OPERATIONS (cache only, the database is authoritative)
    async def get_redis_items(self, redis: Redis, user_id: UUID) -> List[Dict] | None:
        """Returns None on a cache miss or an unreadable entry."""
        try:
            data = await redis.get(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Cart cache read failed for {user_id}: {e}")
            return None

        if not data:
            return None

        if isinstance(data, bytes):
            data = data.decode("utf-8")

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            await self.delete_redis_cart(redis, user_id)
            return None

        items = payload.get("items") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            await self.delete_redis_cart(redis, user_id)
            return None

        return items

    async def set_redis_items(
        self,
        redis: Redis,
        user_id: UUID,
        items: List[Dict],
        ttl: int,
    ):
        payload = {
            "v": 1,
            "items": items,
        }
        try:
            await redis.set(self._key(user_id), json.dumps(payload), ex=ttl)
        except RedisError as e:
            logger.warning(f"Cart cache write failed for {user_id}: {e}")

    async def delete_redis_cart(self, redis: Redis, user_id: UUID):
        try:
            await redis.delete(self._key(user_id))
        except RedisError as e:
            logger.warning(f"Cart cache delete failed for {user_id}: {e}")

    # DATABASE OPERATIONS
    async def get_db_items(self, user_id: UUID) -> List[CartItem]:
        result = await self.session.execute(
            select(CartItem)
            .options(selectinload(CartItem.medication))
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_db_item(self, user_id: UUID, medication_id: UUID) -> CartItem | None:
        result = await self.session.execute(
            select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.medication_id == medication_id,
            )
        )
        return result.scalar_one_or_none()

    async def clear_db_cart(self, user_id: UUID):
        await self.session.execute(delete(CartItem).where(CartItem.user_id == user_id))
