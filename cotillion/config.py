"""Environment-driven settings."""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# Deployment
ENV = os.getenv("ENV")
ENV_IS_PROD = ENV == "prod"
COMMIT_HASH = os.getenv("COMMIT_HASH")
APP_ADDR = os.getenv("HOST", "0.0.0.0")
APP_PORT = int(os.getenv("PORT", "8000"))

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./cotillion.db")
SQL_DEBUG = _flag("SQL_DEBUG")

# Site gate and sessions
DEFAULT_ACCESS_PASSWORD = "change-me"
ACCESS_PASSWORD = os.getenv("ACCESS_PASSWORD", DEFAULT_ACCESS_PASSWORD)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "cotillion_sid")
SESSION_IDLE_DAYS = int(os.getenv("SESSION_IDLE_DAYS", "7"))
SESSION_COOKIE_SECURE = _flag("SESSION_COOKIE_SECURE")

# Credentials
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# Proposal engine
ACCEPT_MAX_RETRIES = int(os.getenv("ACCEPT_MAX_RETRIES", "3"))
ACCEPT_RETRY_DELAY_SECONDS = float(os.getenv("ACCEPT_RETRY_DELAY_SECONDS", "0.05"))

# Observability
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")


def validate_settings() -> None:
    """Refuse to start a production deployment with unsafe settings."""
    if not ENV_IS_PROD:
        return
    if not COMMIT_HASH:
        raise ValueError("COMMIT_HASH is required for production environments")
    if ACCESS_PASSWORD == DEFAULT_ACCESS_PASSWORD:
        raise ValueError("ACCESS_PASSWORD must be changed for production environments")
