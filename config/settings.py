import os
from dotenv import load_dotenv

# Load environment variables from the .env file
load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


# Database
DATABASE_URL_ASYNC = os.getenv("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./partnerflow.db")
SQL_ECHO = _as_bool(os.getenv("SQL_ECHO"))

# Tokens
ALGORITHM = os.getenv("ALGORITHM", "HS256")
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")  # should be kept secret
REFRESH_JWT_KEY = os.getenv("REFRESH_JWT_KEY", "change-me-too")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15"))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))

# Accounts
TRIAL_DAYS = int(os.getenv("TRIAL_DAYS", "14"))
SUPER_ADMIN_EMAILS = [email.lower() for email in _as_list(os.getenv("SUPER_ADMIN_EMAILS", "admin@partnerflow.app"))]

# Profile provisioning poll after signup
PROFILE_POLL_ATTEMPTS = int(os.getenv("PROFILE_POLL_ATTEMPTS", "30"))
PROFILE_POLL_INTERVAL = float(os.getenv("PROFILE_POLL_INTERVAL", "1.0"))

# Http
CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:4173,http://localhost:8080"))

SCHEDULER_ENABLED = _as_bool(os.getenv("SCHEDULER_ENABLED"), default=True)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
