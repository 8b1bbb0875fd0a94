import logging
import os
import traceback
import uuid

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from redis.asyncio import Redis
from redis.exceptions import RedisError
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.router import router as api_router
from app.core.config import settings
from app.core.deps import get_redis
from app.core.exceptions import (
    AuthenticationFailed,
    EmailNotVerified,
    InsufficientStockError,
    NotAuthorized,
    PasswordVerificationError,
)
from app.core.limiter import limiter, rate_limit_exceeded_handler
from app.core.logging import request_id_var, setup_logging
from app.db.sessions import get_async_session
from app.storage.local_storage import PUBLIC_FOLDERS, PUBLIC_PREFIX

# LOGGING
setup_logging()
logger = logging.getLogger(__name__)

# APP INITIALIZATION
app = FastAPI(
    title=settings.app_name,
    version="1.0.0",
)


# ERROR HANDLERS
# Every error body carries a "message" key
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation failed on {request.url.path}")
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(AuthenticationFailed)
@app.exception_handler(PasswordVerificationError)
async def auth_exception_handler(request: Request, exc: Exception):
    logger.warning(f"Auth failure: {str(exc)} | RequestID: {request_id_var.get()}")
    return JSONResponse(
        status_code=401,
        content={"message": str(exc)},
    )


@app.exception_handler(NotAuthorized)
@app.exception_handler(EmailNotVerified)
async def not_authorized_handler(request: Request, exc: Exception):
    return JSONResponse(
        status_code=403,
        content={"message": str(exc)},
    )


@app.exception_handler(InsufficientStockError)
async def insufficient_stock_handler(request: Request, exc: InsufficientStockError):
    return JSONResponse(
        status_code=400,
        content={"message": str(exc)},
    )


@app.exception_handler(Exception)
async def universal_exception_handler(request: Request, exc: Exception):
    # Log the real error for the developer
    logger.error(f"Unhandled error: {str(exc)}", exc_info=True)

    content = {"message": "An unexpected error occurred."}
    if not settings.is_production:
        content["error"] = str(exc)
        content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)

    return JSONResponse(status_code=500, content=content)


# ROUTERS
app.include_router(api_router, prefix="/api")

if settings.storage == "local":
    for folder in PUBLIC_FOLDERS:
        app.mount(
            f"{PUBLIC_PREFIX}/{folder}",
            StaticFiles(directory=os.path.join(settings.upload_dir, folder), check_dir=False),
            name=f"uploads-{folder}",
        )


# RATE LIMITING
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# SECURITY MIDDLEWARES
app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=[h.strip() for h in settings.allowed_hosts.split(",")],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


# REQUEST TRACING & SECURITY HEADERS
@app.middleware("http")
async def security_and_tracing_middleware(request: Request, call_next):
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    token = request_id_var.set(request_id)

    try:
        response = await call_next(request)

        response.headers["X-Request-Id"] = request_id
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        if settings.is_production:
            response.headers["Strict-Transport-Security"] = (
                "max-age=63072000; includeSubDomains"
            )

        return response

    finally:
        request_id_var.reset(token)


# HEALTH CHECKS
@app.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_async_session),
    redis: Redis = Depends(get_redis),
):
    health_status = {"status": "healthy", "dependencies": {}}

    # 1. Check the database
    try:
        await db.execute(text("SELECT 1"))
        health_status["dependencies"]["database"] = "ok"
    except SQLAlchemyError as e:
        health_status["status"] = "unhealthy"
        health_status["dependencies"]["database"] = str(e)

    # 2. Check Redis
    try:
        await redis.ping()
        health_status["dependencies"]["redis"] = "ok"
    except (RedisError, OSError) as e:
        health_status["status"] = "unhealthy"
        health_status["dependencies"]["redis"] = str(e)

    return health_status
