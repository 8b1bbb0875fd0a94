import logging
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from starlette import status

from app.core.deps import get_current_user, get_service
from app.core.limiter import limiter
from app.models.user import User
from app.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
)
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
@limiter.limit("5/15minutes")  # Slows down mass account creation
async def register(
    request: Request,
    user_in: RegisterRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    """
    Customer registration. The account stays locked until the emailed link is followed.
    """
    return await auth_service.register(user_in, background_tasks)


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(
    token: str | None = Query(None),
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    return await auth_service.verify_email(token)


@router.post("/resend-verification", response_model=MessageResponse)
@limiter.limit("5/15minutes")
async def resend_verification(
    request: Request,
    body: ResendVerificationRequest,
    background_tasks: BackgroundTasks,
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    return await auth_service.resend_verification(body.email, background_tasks)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")  # Brute-force protection
async def login(
    request: Request,
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    """
    Authenticate user and return a JWT access token.
    """
    return await auth_service.login(email=login_data.email, password=login_data.password)


@router.post("/change-password", response_model=MessageResponse)
@limiter.limit("30/minute")
async def change_password(
    request: Request,
    password_data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    auth_service: AuthService = Depends(get_service(AuthService)),
):
    await auth_service.change_password(
        user_id=current_user.id,
        old_password=password_data.old_password,
        new_password=password_data.new_password,
    )
    return {"message": "Password updated successfully"}
