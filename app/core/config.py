import logging
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    # --- APP BASICS ---
    app_name: str = "Pharmacy Storefront API"
    environment: str = "development"
    log_level: str = "INFO"
    frontend_url: str = "http://localhost:3000"
    allowed_hosts: str = "*"
    cors_origins: str = "http://localhost:3000,http://localhost:8000"

    # --- DATABASE & REDIS ---
    database_url: str
    redis_url: str = "redis://localhost:6379/0"

    # --- SECURITY ---
    secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15
    guest_token_expire_hours: int = 24
    verification_token_expire_hours: int = 24

    # --- FILE STORAGE ---
    storage: str = "local"
    upload_dir: str = "uploads"

    s3_bucket: str | None = None
    s3_endpoint: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = None
    s3_region: str = "auto"

    # --- EMAIL ---
    sendgrid_api_key: str | None = None
    email_from: str = "no-reply@example.com"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"

    model_config = SettingsConfigDict(
        # System environment variables always override the .env files.
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="allow",
        case_sensitive=False
    )

settings = Settings()
