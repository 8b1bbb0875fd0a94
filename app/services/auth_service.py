import logging
from uuid import UUID
from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette import status
from app.crud.user import UserCRUD
from app.core.config import settings
from app.db.enums import UserRole

from app.models.user import User
from app.core.security import (
    create_access_token,
    create_guest_token,
    generate_verification_token,
    hash_password,
    verify_password,
)
from app.core.exceptions import AuthenticationFailed, EmailNotVerified, NotAuthorized, PasswordVerificationError
from app.schemas.user import GuestInitiateRequest, RegisterRequest
from app.services.notification.notification_service import NotificationService

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, session: AsyncSession, notification_service: NotificationService):
        self.user_crud = UserCRUD(session=session)
        self.session = session
        self.notification_service = notification_service

    def _queue_verification_email(self, background_tasks: BackgroundTasks, user: User):
        background_tasks.add_task(
            self.notification_service.send_verification_email,
            email=user.email,
            full_name=user.full_name,
            token=user.verification_token,
            verify_url=f"{settings.frontend_url}/verify-email",
        )

    async def register(self, user_in: RegisterRequest, background_tasks: BackgroundTasks) -> dict:
        """
        Creates a customer account awaiting email verification.
        An unverified account with the same email is overwritten with the new details.
        """
        email = user_in.email.lower()
        token, expires_at = generate_verification_token()

        existing_user = await self.user_crud.get_by_email(email)
        if existing_user and existing_user.is_email_verified:
            logger.warning(f"Registration failed: {email} already in use.")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already in use",
            )

        try:
            if existing_user:
                existing_user.full_name = user_in.full_name
                existing_user.phone_number = user_in.phone_number
                existing_user.hashed_password = hash_password(user_in.password)
                existing_user.verification_token = token
                existing_user.verification_token_expires_at = expires_at
                user = existing_user
                logger.info(f"Re-registration of unverified account {user.id}")
            else:
                user = await self.user_crud.create_user(
                    {
                        "email": email,
                        "full_name": user_in.full_name,
                        "phone_number": user_in.phone_number,
                        "hashed_password": hash_password(user_in.password),
                        "role": UserRole.CUSTOMER,
                        "verification_token": token,
                        "verification_token_expires_at": expires_at,
                    }
                )

            await self.session.commit()
            logger.info(f"User registered, awaiting verification: {user.id}")

        except PasswordVerificationError:
            await self.session.rollback()
            raise
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Database error during registration: {str(e)}")
            raise

        self._queue_verification_email(background_tasks, user)

        return {
            "message": "Registration successful. Please check your email to verify your account.",
            "email": email,
        }

    async def verify_email(self, token: str | None) -> dict:
        if not token:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Verification token is required",
            )

        user = await self.user_crud.get_by_verification_token(token)
        if not user:
            logger.warning("Email verification failed: invalid or expired token")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid or expired verification token",
            )

        user.is_email_verified = True
        user.verification_token = None
        user.verification_token_expires_at = None
        await self.session.commit()

        logger.info(f"Email verified for user {user.id}")
        return {"message": "Email verified successfully. You can now log in."}

    async def resend_verification(self, email: str, background_tasks: BackgroundTasks) -> dict:
        user = await self.user_crud.get_by_email(email)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )

        if user.is_email_verified:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email is already verified",
            )

        user.verification_token, user.verification_token_expires_at = generate_verification_token()
        await self.session.commit()

        self._queue_verification_email(background_tasks, user)
        logger.info(f"Verification email re-sent to user {user.id}")
        return {"message": "Verification email sent"}

    async def login(self, email: str, password: str) -> dict:
        """
        Validates user credentials and issues an access token.
        """
        user = await self.user_crud.get_by_email(email)

        # Same error for unknown email and wrong password
        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Login failed: Invalid credentials for {email}")
            raise AuthenticationFailed("Invalid credentials")

        if not user.is_active:
            logger.warning(f"Login blocked: Account disabled for {email}")
            raise NotAuthorized("User account is inactive. Please contact support.")

        if not user.is_email_verified:
            logger.info(f"Login blocked: Email not verified for {email}")
            raise EmailNotVerified("Please verify your email before logging in")

        logger.info(f"Login successful: User {user.id}")

        return {
            "access_token": create_access_token(user),
            "token_type": "bearer",
            "user": user,
        }

    async def change_password(self, user_id: UUID, old_password: str, new_password: str) -> None:
        """
        Verifies old password and updates to a new hashed password.
        """
        user = await self.user_crud.get_by_id(user_id)
        if not user:
            raise AuthenticationFailed("User not found.")

        if not verify_password(old_password, user.hashed_password):
            logger.warning(f"Password change failed: Incorrect old password for user {user_id}")
            raise PasswordVerificationError("Old password is incorrect.")

        if verify_password(new_password, user.hashed_password):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="New password cannot be the same as the old password.",
            )

        user.hashed_password = hash_password(new_password)

        try:
            await self.session.commit()
            logger.info(f"Password updated successfully for user {user_id}")
        except Exception as e:
            await self.session.rollback()
            logger.error(f"Error updating password for {user_id}: {str(e)}")
            raise

    async def initiate_guest_checkout(self, guest_in: GuestInitiateRequest) -> dict:
        """
        Issues a short-lived guest token. Emails that belong to an account must log in instead.
        """
        email = guest_in.email.lower() if guest_in.email else None

        if email and await self.user_crud.get_by_email(email):
            logger.info(f"Guest checkout refused: {email} is a registered account")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={
                    "message": "This email is already registered. Please log in to continue.",
                    "code": "EMAIL_ALREADY_REGISTERED",
                    "action": "LOGIN_REQUIRED",
                },
            )

        token, guest_id = create_guest_token(name=guest_in.name, phone=guest_in.phone, email=email)
        logger.info(f"Guest checkout initiated: {guest_id}")

        return {
            "message": "Guest checkout initiated",
            "guest_token": token,
            "guest": {
                "guest_id": guest_id,
                "name": guest_in.name,
                "phone": guest_in.phone,
                "email": email,
            },
        }
