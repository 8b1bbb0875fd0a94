import uuid

import pytest
from fastapi import status
from sqlalchemy import select

from app.core.security import decode_token
from app.models.user import User

PASSWORD = "Str0ng!Pass"


def _registration(email: str | None = None) -> dict:
    return {
        "full_name": "test user",
        "email": email or f"test_{uuid.uuid4().hex[:6]}@example.com",
        "phone_number": "+234 801 234 5678",
        "password": PASSWORD,
    }


async def _get_user(db_session, email: str) -> User:
    result = await db_session.execute(select(User).where(User.email == email))
    user = result.scalar_one()
    await db_session.refresh(user)
    return user


@pytest.mark.asyncio
async def test_register_customer_success(client, db_session, mock_notification):
    """Registration creates an unverified customer and emails a link."""
    payload = _registration()

    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["email"] == payload["email"]

    user = await _get_user(db_session, payload["email"])
    assert user.is_email_verified is False
    assert user.phone_number == "+2348012345678"
    assert len(user.verification_token) == 64

    mock_notification.send_verification_email.assert_awaited_once()
    kwargs = mock_notification.send_verification_email.await_args.kwargs
    assert kwargs["token"] == user.verification_token


@pytest.mark.parametrize(
    "password",
    ["short1!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigits!!", "NoSpecial123"],
)
async def test_register_rejects_weak_passwords(client, password):
    payload = _registration()
    payload["password"] = password

    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Validation failed"


async def test_register_name_is_trimmed_before_length_check(client, db_session):
    padded = _registration()
    padded["full_name"] = " A "
    short = await client.post("/api/auth/register", json=padded)
    assert short.status_code == status.HTTP_400_BAD_REQUEST

    padded["full_name"] = "  Ada Lovelace "
    response = await client.post("/api/auth/register", json=padded)
    assert response.status_code == status.HTTP_201_CREATED

    user = await _get_user(db_session, padded["email"])
    assert user.full_name == "Ada Lovelace"


async def test_register_verified_email_is_rejected(client, test_customer):
    response = await client.post("/api/auth/register", json=_registration("ada@example.com"))

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["message"] == "Email already in use"


async def test_reregistering_unverified_account_replaces_token(client, db_session):
    payload = _registration()
    await client.post("/api/auth/register", json=payload)
    first_token = (await _get_user(db_session, payload["email"])).verification_token

    payload["full_name"] = "Renamed User"
    response = await client.post("/api/auth/register", json=payload)

    assert response.status_code == status.HTTP_201_CREATED
    user = await _get_user(db_session, payload["email"])
    assert user.full_name == "Renamed User"
    assert user.verification_token != first_token


async def test_unverified_login_is_forbidden(client):
    payload = _registration()
    await client.post("/api/auth/register", json=payload)

    response = await client.post(
        "/api/auth/login", json={"email": payload["email"], "password": PASSWORD}
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["message"] == "Please verify your email before logging in"


async def test_verify_email_then_login(client, db_session):
    """Following the emailed token unlocks the account."""
    payload = _registration()
    await client.post("/api/auth/register", json=payload)
    token = (await _get_user(db_session, payload["email"])).verification_token

    response = await client.get("/api/auth/verify-email", params={"token": token})
    assert response.status_code == status.HTTP_200_OK

    user = await _get_user(db_session, payload["email"])
    assert user.is_email_verified is True
    assert user.verification_token is None

    login = await client.post(
        "/api/auth/login", json={"email": payload["email"], "password": PASSWORD}
    )
    assert login.status_code == status.HTTP_200_OK

    claims = decode_token(login.json()["access_token"])
    assert claims["type"] == "access"
    assert claims["role"] == "customer"
    assert claims["sub"] == str(user.id)
    assert login.json()["user"]["email"] == payload["email"]


async def test_verify_email_requires_valid_token(client):
    missing = await client.get("/api/auth/verify-email")
    assert missing.status_code == status.HTTP_400_BAD_REQUEST

    invalid = await client.get("/api/auth/verify-email", params={"token": "nope"})
    assert invalid.status_code == status.HTTP_400_BAD_REQUEST
    assert invalid.json()["message"] == "Invalid or expired verification token"


async def test_resend_verification(client, test_customer, mock_notification):
    unknown = await client.post(
        "/api/auth/resend-verification", json={"email": "ghost@example.com"}
    )
    assert unknown.status_code == status.HTTP_404_NOT_FOUND

    verified = await client.post(
        "/api/auth/resend-verification", json={"email": "ada@example.com"}
    )
    assert verified.status_code == status.HTTP_400_BAD_REQUEST

    payload = _registration()
    await client.post("/api/auth/register", json=payload)
    resent = await client.post(
        "/api/auth/resend-verification", json={"email": payload["email"]}
    )
    assert resent.status_code == status.HTTP_200_OK
    assert mock_notification.send_verification_email.await_count == 2


async def test_login_wrong_password(client, test_customer):
    response = await client.post(
        "/api/auth/login", json={"email": "ada@example.com", "password": "Wr0ng!Pass"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Invalid credentials"


async def test_change_password(client, customer_token):
    response = await client.post(
        "/api/auth/change-password",
        json={"old_password": PASSWORD, "new_password": "N3w!Password"},
        headers=customer_token,
    )
    assert response.status_code == status.HTTP_200_OK

    old_login = await client.post(
        "/api/auth/login", json={"email": "ada@example.com", "password": PASSWORD}
    )
    assert old_login.status_code == status.HTTP_401_UNAUTHORIZED

    new_login = await client.post(
        "/api/auth/login", json={"email": "ada@example.com", "password": "N3w!Password"}
    )
    assert new_login.status_code == status.HTTP_200_OK


async def test_change_password_wrong_old_password(client, customer_token):
    response = await client.post(
        "/api/auth/change-password",
        json={"old_password": "Wr0ng!Pass", "new_password": "N3w!Password"},
        headers=customer_token,
    )
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


async def test_protected_route_requires_token(client):
    response = await client.get("/api/orders/me")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Not authenticated"
