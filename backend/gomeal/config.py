"""Application configuration via environment variables."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./gomeal.db"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: str = "http://localhost:3000"

    JWT_SECRET: str = "dev-secret-change-me"
    JWT_EXPIRES_DAYS: int = 7
    AUTH_COOKIE_NAME: str = "gohan_auth_token"
    FRONTEND_URL: str = "http://localhost:3000"

    DEFAULT_COMMUNITY_NAME: str = "KING"
    DEFAULT_COMMUNITY_CODE: str = "KINGCODE"
    AUTO_APPROVE_MEMBERS: bool = True
    INCLUDE_SEED_USERS: bool = True

    ENABLE_SEED_ADMIN: bool = False
    SEED_ADMIN_EMAIL: str = ""
    SEED_ADMIN_PASSWORD: str = ""
    ADMIN_INVITE_CODE: str = ""

    # LINE Login
    LINE_CHANNEL_ID: str = ""
    LINE_CHANNEL_SECRET: str = ""
    LINE_REDIRECT_URI: str = ""
    SESSION_SECRET: str = ""

    # LINE Messaging API
    LINE_MESSAGING_CHANNEL_ACCESS_TOKEN: str = ""
    LINE_MESSAGING_CHANNEL_SECRET: str = ""
    ENABLE_LINE_DAILY_AVAILABILITY_PUSH: bool = False
    ENABLE_LINE_GROUPMEAL_REMINDER: bool = False
    # Shared secret for the scheduled LINE jobs, sent as X-Cron-Secret
    CRON_SECRET: str = ""

    PROFILE_IMAGE_DIR: str = "./uploads/profile-images"
    PROFILE_IMAGE_URL_PREFIX: str = "/uploads/profile-images"

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def line_state_secret(self) -> str:
        return self.SESSION_SECRET or self.JWT_SECRET

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Build the settings once per process."""
    return Settings()
