import os
import logging
from dataclasses import dataclass
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEV_SECRET_KEY = "validate-secret-key-123"


def _env_bool(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name, default):
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"⚠️ {name}={value!r} is not an integer, using {default}")
        return default


@dataclass
class Settings:
    secret_key: str = DEV_SECRET_KEY
    database_path: str = os.path.join("data", "app_database.sqlite3")
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_timeout_ms: int = 120000
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    app_url: str = "http://localhost:3000"
    session_max_age: int = 7 * 24 * 60 * 60
    session_cookie_secure: bool = True
    pro_price_cents: int = 2900
    log_level: str = "INFO"

    @property
    def billing_enabled(self):
        return bool(self.stripe_secret_key)

    @classmethod
    def from_env(cls):
        """Read settings from the environment (and a local .env file)."""
        load_dotenv()

        secret_key = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET")
        if not secret_key:
            logger.warning("⚠️ SECRET_KEY not set, falling back to the development key.")
            secret_key = DEV_SECRET_KEY

        return cls(
            secret_key=secret_key,
            database_path=os.getenv("DATABASE_PATH", cls.database_path),
            gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip(),
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            gemini_timeout_ms=_env_int("GEMINI_TIMEOUT_MS", cls.gemini_timeout_ms),
            stripe_secret_key=(os.getenv("STRIPE_SECRET_KEY") or "").strip(),
            stripe_webhook_secret=(os.getenv("STRIPE_WEBHOOK_SECRET") or "").strip(),
            app_url=os.getenv("APP_URL", cls.app_url).rstrip("/"),
            session_max_age=_env_int("SESSION_MAX_AGE", cls.session_max_age),
            session_cookie_secure=_env_bool("SESSION_COOKIE_SECURE", True),
            pro_price_cents=_env_int("PRO_PRICE_CENTS", cls.pro_price_cents),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
