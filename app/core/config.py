from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CHOREKINGS_", env_file=".env", extra="ignore")
    DATABASE_URL: str = "sqlite:///./chorekings.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    SESSION_COOKIE_NAME: str = "kk_session"
    SESSION_TTL_DAYS: int = 14
    COOKIE_SECURE: bool = False

    ADMIN_EMAIL: str = "admin@chorekings.app"
    ADMIN_PASSWORD: str = "change-me-admin"
    ADMIN_NOTIFICATION_EMAIL: str = "info@chorekings.app"

    # notifications are skipped (logged only) when no endpoint is configured
    NOTIFICATIONS_URL: str | None = None
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0

    FAMILY_CODE_ATTEMPTS: int = 10
    PREMIUM_PRICE_MONTHLY_CENTS: int = 299
    PREMIUM_PRICE_YEARLY_CENTS: int = 2499


settings = Settings()
