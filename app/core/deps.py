import inspect
import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Type, TypeVar

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import decode_token
from app.db.enums import UserRole
from app.db.sessions import get_async_session
from app.models import User
from app.services.notification.notification_service import NotificationService
from app.storage.base import StorageInterface
from app.storage.local_storage import LocalStorage
from app.storage.r2_storage import R2Storage


logger = logging.getLogger(__name__)

# HTTPBearer is used for "Authorization: Bearer <token>" headers
oauth2_scheme = HTTPBearer(auto_error=False)

T = TypeVar("T")

# One Redis client (connection pool) per process
redis_client = Redis.from_url(
    settings.redis_url,
    decode_responses=True,
)


@dataclass
class Identity:
    """Who is placing an order: a registered user, a guest token holder, or nobody."""
    user: User | None = None
    guest: dict[str, Any] | None = None

    @property
    def is_guest(self) -> bool:
        return self.user is None


def _decode(credentials: HTTPAuthorizationCredentials) -> dict:
    try:
        return decode_token(credentials.credentials)
    except JWTError:
        logger.warning("JWT Decode Failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is invalid or has expired"
        )


async def _load_user(payload: dict, session: AsyncSession) -> User:
    user_id_str = payload.get("sub")

    try:
        user_uuid = uuid.UUID(user_id_str)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identifier format"
        )

    result = await session.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if not user:
        logger.warning(f"Auth Failure: User {user_id_str} not found in database.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account disabled")

    return user


async def get_current_user(
    token: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session)
) -> User:
    """
    Dependency that authenticates requests using an access JWT.
    Guest tokens are not accepted here.
    """
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    payload = _decode(token)
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )

    return await _load_user(payload, session)


async def get_optional_identity(
    token: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session)
) -> Identity:
    """
    For routes open to guests. A present but invalid token is still rejected.
    """
    if not token:
        return Identity()

    payload = _decode(token)
    token_type = payload.get("type")

    if token_type == "guest":
        return Identity(guest=payload)
    if token_type == "access":
        return Identity(user=await _load_user(payload, session))

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token type",
    )


# ROLE BASED ACCESS CONTROL (SUB DEPENDENCIES OF GET CURRENT USER)

def require_roles(*roles: UserRole, detail: str | None = None) -> Callable[..., User]:
    allowed = set(roles)
    message = detail or "You do not have permission to perform this action"

    def _check(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=message,
            )
        return current_user

    return _check


get_current_customer = require_roles(UserRole.CUSTOMER, detail="Customer access required")
get_current_admin = require_roles(UserRole.ADMIN, detail="Admin access required")
get_current_staff = require_roles(
    UserRole.ADMIN, UserRole.PHARMACIST, detail="Pharmacist or admin access required"
)


# SERVICE DEPENDENCIES

async def get_redis() -> Redis:
    return redis_client


@lru_cache
def _build_storage(backend: str) -> StorageInterface:
    if backend == "r2":
        return R2Storage()
    return LocalStorage()


def get_storage() -> StorageInterface:
    return _build_storage(settings.storage)


def get_notification_service() -> NotificationService:
    return NotificationService()


def get_service(service_cls: Type[T]):
    """
    Builds a service, handing it only the collaborators its constructor asks for
    (session, notification_service, storage).
    """
    wanted = inspect.signature(service_cls.__init__).parameters

    def _get(
        db: AsyncSession = Depends(get_async_session),
        notification_service: NotificationService = Depends(get_notification_service),
        storage: StorageInterface = Depends(get_storage),
    ) -> T:
        available = {
            "session": db,
            "notification_service": notification_service,
            "storage": storage,
        }
        return service_cls(**{name: dep for name, dep in available.items() if name in wanted})

    return _get
