import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import List, Optional

DEV_SESSION_SECRET = "supersecret"


class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Sessions
    SESSION_SECRET: str = DEV_SESSION_SECRET
    SESSION_COOKIE: str = "codegolden_session"
    SESSION_MAX_AGE: int = 60 * 60 * 24 * 14

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = None
    GOOGLE_CLIENT_SECRET: Optional[str] = None
    GOOGLE_CALLBACK_URL: Optional[str] = None  # derived from the request when unset
    LOGIN_SUCCESS_REDIRECT: str = "/index.html"
    LOGIN_FAILURE_REDIRECT: str = "/login.html"

    # Model providers
    OPENAI_API_KEY: Optional[str] = None
    GEMINI_API_KEY: Optional[str] = None
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com"
    PLAYGROUND_MODEL: str = "gpt-4o-mini"
    ADVANCED_MODEL: str = "gpt-4"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    ULTRA_MODEL: str = "gemini-2.5-pro"
    ULTRA_HISTORY_LIMIT: int = 20
    MODEL_TIMEOUT_SECONDS: float = 60.0

    # Admin access
    ADMIN_KEY: Optional[str] = None  # shared secret sent as X-Admin-Key
    ADMIN_EMAILS: str = ""  # comma-separated admin identities
    ADMIN_AUTH_MODE: str = "hybrid"  # "secret" | "identity" | "hybrid"

    # Plans
    PLAN_DURATION_DAYS: int = 30

    # Persistence (in-memory ledger when unset)
    DATABASE_URL: Optional[str] = None

    # Web
    STATIC_DIR: str = "public"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: str = "http://localhost:3000"

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def admin_email_list(self) -> List[str]:
        return [item.strip().lower() for item in self.ADMIN_EMAILS.split(",") if item.strip()]

    @property
    def cors_origin_list(self) -> List[str]:
        return [item.strip() for item in self.CORS_ORIGINS.split(",") if item.strip()]


settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("codegolden")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "GOOGLE_CLIENT_ID",
        "GOOGLE_CLIENT_SECRET",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "ADMIN_KEY",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True
