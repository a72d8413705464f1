# unified_alerts/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or a .env / .env.dev file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────────────────
    DATABASE_URL: Optional[str] = None   # Full URL wins over the parts below
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_USERNAME: str = "postgres"
    DATABASE_PASSWORD: str = ""
    DATABASE_NAME: str = "postgres"
    DATABASE_SSLMODE: str = "require"

    # ── Discord ───────────────────────────────────────────────────────────
    DISCORD_HOOK: Optional[str] = None   # Required at run time
    NOTIFY_DISCORD: bool = True          # NOTIFY_DISCORD=0 logs incidents instead of sending
    BOT_USERNAME: str = "Unified Alert Bot"
    SEND_DELAY_SECONDS: float = 2.0      # Throttle between webhook calls
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # ── Enrichment ────────────────────────────────────────────────────────
    GOOGLE_MAPS_API_KEY: Optional[str] = None
    NEARBY_CAMERA_LIMIT: int = 3
    CAMERA_ATTACHMENTS: bool = True      # Attach the nearest camera frame to the embed
    CAPTURE_DIR: Optional[str] = None    # Defaults to the system temp dir

    # ── Sent state ────────────────────────────────────────────────────────
    SENT_STATE_MODE: str = "column"      # column | file
    STATE_FILENAME: str = "sent_unified_alerts.json"

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    LOG_RAW_DETAILS: bool = False

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DATABASE_USERNAME}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
            f"?sslmode={self.DATABASE_SSLMODE}"
        )

    class Config:
        env_file = (".env.dev", ".env")   # .env takes priority
        extra = "ignore"


class ConfigurationError(RuntimeError):
    """Raised when a setting required for a run is missing or invalid."""


settings = Settings()
