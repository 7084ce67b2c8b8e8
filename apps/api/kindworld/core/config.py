"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Proxy/Load Balancer Settings
    # Set to True when running behind nginx/Cloudflare to trust X-Forwarded-For
    TRUST_PROXY_HEADERS: bool = False

    # Database
    DATABASE_URL: str

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Frontend (links rendered into notification templates)
    FRONTEND_URL: str = "http://localhost:3000"

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Email delivery (Resend). Empty key = dry run, emails are logged only.
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "KindWorld <noreply@kindworld.org>"

    # Delivery queue
    DELIVERY_BATCH_SIZE: int = 10
    DELIVERY_SEND_TIMEOUT_SECONDS: float = 20.0
    DELIVERY_LEASE_SECONDS: int = 120

    # Worker
    WORKER_POLL_INTERVAL: int = 10
    WORKER_CONCURRENCY: int = 2

    # Live notification feed (websocket) poll cadence
    LIVE_FEED_POLL_SECONDS: float = 5.0

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def frontend_base_url(self) -> str:
        """FRONTEND_URL without a trailing slash."""
        return self.FRONTEND_URL.rstrip("/")


settings = Settings()
