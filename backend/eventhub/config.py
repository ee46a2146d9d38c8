"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    PUBLIC_URL: str = "http://localhost:8000"
    CORS_ORIGINS: str = "http://localhost:3000"
    ADMIN_EMAILS: str = ""
    SESSION_COOKIE_NAME: str = "eventhub_session"
    LOG_LEVEL: str = "INFO"

    # Timers and token lifetimes
    TICK_SECONDS: float = 5.0
    LOGIN_TOKEN_TTL_MINUTES: int = 60
    DELETE_TOKEN_TTL_MINUTES: int = 60
    EVENT_EDIT_LOCK_MINUTES: int = 0
    REMINDER_WINDOW_HOURS: int = 24

    # Outbound email; an empty host logs emails instead of sending them
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "noreply@localhost"
    SMTP_TLS: bool = True

    class Config:
        env_file = ".env"

    def admin_emails(self) -> set[str]:
        return {email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()}


settings = Settings()
