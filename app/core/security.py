import logging
import secrets
import bcrypt
from app.core.exceptions import PasswordVerificationError
from datetime import datetime, timedelta, timezone
from jose import jwt
from app.core.config import settings


logger = logging.getLogger(__name__)


# ----- JWT --------

def create_access_token(user) -> str:
    """
    Generates a short-lived JWT Access Token.

    Payload:
    - sub: The User UUID (Standard subject claim)
    - type: "access"
    - email: Included for quick frontend display without a DB lookup
    - role: The role of the user
    - pharmacy_id: Affiliated pharmacy, or None
    - exp: Expiration timestamp (Default: 15 minutes)
    """

    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    payload = {
        "sub": str(user.id),
        "type": "access",
        "email": str(user.email),
        "role": user.role.value,
        "pharmacy_id": str(user.pharmacy_id) if user.pharmacy_id else None,
        "iat": now,
        "exp": expire
    }

    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    logger.debug(f"JWT: Access token created for user {user.id}")
    return token

def create_guest_token(*, name: str, phone: str, email: str | None) -> tuple[str, str]:
    """
    Generates a guest checkout token carrying contact details instead of a user id.
    Returns the token and the random guest id embedded in it.
    """

    now = datetime.now(timezone.utc)
    expire = now + timedelta(hours=settings.guest_token_expire_hours)
    guest_id = secrets.token_hex(16)

    payload = {
        "sub": guest_id,
        "type": "guest",
        "name": name,
        "phone": phone,
        "email": email,
        "iat": now,
        "exp": expire
    }

    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    logger.debug(f"JWT: Guest token created for guest {guest_id}")
    return token, guest_id

def decode_token(token: str) -> dict:
    """Raises jose.JWTError when the signature or expiry is invalid."""
    return jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"leeway": 30}
    )


# --- ONE-TIME CODES ---

def generate_verification_token() -> tuple[str, datetime]:
    expires_at = datetime.now(timezone.utc) + timedelta(
        hours=settings.verification_token_expire_hours
    )
    return secrets.token_hex(32), expires_at

def generate_confirmation_code() -> str:
    return secrets.token_hex(8).upper()


# --- HASHING BCRYPT ---

MAX_BYTE_LENGTH = 72

def hash_password(password: str) -> str:
    """Hashes a plain-text password using native Bcrypt."""

    # bcrypt silently truncates anything past 72 bytes
    if len(password.encode("utf-8")) > MAX_BYTE_LENGTH:
        logger.warning("Password hashing failed: Input exceeds 72-byte limit.")
        raise PasswordVerificationError("Password too long")

    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt()
    ).decode("utf-8")

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plain-text password against a stored hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        logger.error("Password verification failed: stored hash is malformed")
        return False
