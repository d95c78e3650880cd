"""
FeedbackHub – Application configuration from environment variables.
"""

import os
from pathlib import Path
from functools import lru_cache

from pydantic import BaseModel


class Settings(BaseModel):
    """Application settings loaded from environment."""

    # App
    APP_NAME: str = "FeedbackHub"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database (empty = in-memory storage)
    DATABASE_URL: str = ""
    DATABASE_CONNECT_TIMEOUT: float = 5.0

    # AI provider (empty key = enrichment disabled)
    OPENAI_API_KEY: str = ""
    AI_MODEL: str = "gpt-4o-mini"
    AI_BASE_URL: str = ""
    AI_TIMEOUT_SECONDS: float = 20.0
    AI_MAX_ATTEMPTS: int = 3
    AI_INITIAL_DELAY: float = 1.0  # seconds, doubled on every retry

    # Server
    CORS_ORIGINS: list[str] = ["*"]


def _load_dotenv():
    """Load .env file from the project root without overriding real env vars."""
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, val = line.split("=", 1)
                os.environ.setdefault(key.strip(), val.strip())


_load_dotenv()


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance, populated from env vars."""
    defaults = Settings()
    return Settings(
        DEBUG=os.getenv("DEBUG", "false").lower() in ("1", "true", "yes"),
        DATABASE_URL=os.getenv("DATABASE_URL", ""),
        DATABASE_CONNECT_TIMEOUT=float(
            os.getenv("DATABASE_CONNECT_TIMEOUT", defaults.DATABASE_CONNECT_TIMEOUT)
        ),
        # API_KEY is the legacy name used by older deployments
        OPENAI_API_KEY=os.getenv("OPENAI_API_KEY", os.getenv("API_KEY", "")),
        AI_MODEL=os.getenv("AI_MODEL", defaults.AI_MODEL),
        AI_BASE_URL=os.getenv("AI_BASE_URL", ""),
        AI_TIMEOUT_SECONDS=float(os.getenv("AI_TIMEOUT_SECONDS", defaults.AI_TIMEOUT_SECONDS)),
        AI_MAX_ATTEMPTS=int(os.getenv("AI_MAX_ATTEMPTS", defaults.AI_MAX_ATTEMPTS)),
        AI_INITIAL_DELAY=float(os.getenv("AI_INITIAL_DELAY", defaults.AI_INITIAL_DELAY)),
        CORS_ORIGINS=_split_origins(os.getenv("CORS_ORIGINS", "*")) or ["*"],
    )
