"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/sellerwatch"

    # Application
    APP_ENV: str = "development"
    API_V1_PREFIX: str = "/api"

    # Frontend
    FRONTEND_URL: str = "http://localhost:3000"
    ALERTS_DASHBOARD_PATH: str = "/seller-central-checker/notifications"

    # Email delivery
    RESEND_API_KEY: str = ""
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False
    ALERTS_FROM_EMAIL: str = "SellerWatch <alerts@sellerwatch.app>"
    ALERTS_BCC_EMAIL: Optional[str] = None

    # Alerts worker
    ALERTS_SCHEDULER_ENABLED: bool = True
    ALERTS_WORKER_CRON: str = "0 6 * * 0,3"  # 06:00 Sunday + Wednesday
    TIMEZONE: str = "UTC"
    ALERTS_BATCH_SIZE: int = 10
    ALERTS_BATCH_DELAY_SECONDS: float = 1.0

    @property
    def ALERTS_DASHBOARD_URL(self) -> str:
        return self.FRONTEND_URL.rstrip("/") + self.ALERTS_DASHBOARD_PATH

    @property
    def SMTP_CONFIG(self) -> Optional[dict]:
        if not self.SMTP_HOST:
            return None
        return {
            "host": self.SMTP_HOST,
            "port": self.SMTP_PORT,
            "username": self.SMTP_USERNAME,
            "password": self.SMTP_PASSWORD,
            "from_email": self.ALERTS_FROM_EMAIL,
            "use_tls": self.SMTP_USE_TLS,
        }

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True
    )


settings = Settings()
