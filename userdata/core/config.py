import logging
import os

from dotenv import load_dotenv


load_dotenv()

logger = logging.getLogger(__name__)


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %s.", name, value, default)
        return default

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./userdata.db")
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = _get_int("API_PORT", 8000)

CORS_ALLOW_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:4200").split(",")
    if origin.strip()
]

PASSWORD_MIN_LENGTH = _get_int("PASSWORD_MIN_LENGTH", 3)
BCRYPT_ROUNDS = _get_int("BCRYPT_ROUNDS", 12)


def is_sqlite_url(url: str) -> bool:
    return url.strip().lower().startswith("sqlite")


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and is_sqlite_url(DATABASE_URL):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
