"""
PharmaStock Backend Configuration

Uses pydantic-settings for type-safe environment variable loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = Path(__file__).resolve().parent.parent.parent / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "PharmaStock"
    app_version: str = "1.0.0"
    app_env: str = "local"
    debug: bool = False

    # Redis (system notification channel)
    redis_url: str = "redis://localhost:6379/0"
    system_channel: str = "alerts:system"

    # Email
    sendgrid_api_key: str = ""
    alert_from_email: str = "alerts@pharmastock.local"

    # SMS gateway
    sms_gateway_url: str = ""
    sms_api_key: str = ""

    # ── Notification dispatch ────────────────────────────────────────
    channel_timeout_seconds: float = 10.0
    digest_tick_seconds: int = 60
    delivery_log_size: int = 1000

    # ── Replenishment policy ─────────────────────────────────────────
    consumption_window_days: int = 30
    safety_days: int = 30
    default_lead_days: int = 7

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    _enforce_guardrails(settings)
    return settings


def _enforce_guardrails(settings: Settings) -> None:
    env = settings.app_env.strip().lower()
    is_local = env in {"", "local", "dev", "development", "test"}
    if is_local:
        return

    if settings.debug:
        raise ValueError("Refusing to start with debug=true outside local/dev/test")
    if settings.safety_days <= 0 or settings.consumption_window_days <= 0:
        raise ValueError("Refusing to start with non-positive replenishment windows outside local/dev/test")
