"""Application settings and environment helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)

logger = logging.getLogger(__name__)


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Runtime environment --------------------------------------------------------
APP_ENV = (os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development").strip().lower()
IS_PRODUCTION = APP_ENV == "production"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


# Session tokens ---------------------------------------------------------------
_DEV_JWT_SECRET = "dev-insecure-jwt-secret"

if IS_PRODUCTION:
    JWT_SECRET = _require_env("JWT_SECRET")
else:
    JWT_SECRET = os.getenv("JWT_SECRET") or _DEV_JWT_SECRET
    if JWT_SECRET == _DEV_JWT_SECRET:
        logger.warning("JWT_SECRET not set, using development fallback secret")

# Signs the server-side session used only by the OAuth redirect flow.
SESSION_SECRET = os.getenv("SESSION_SECRET") or JWT_SECRET

BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)


# CORS -------------------------------------------------------------------------
# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN", "http://localhost:3000"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *([] if IS_PRODUCTION else _local_dev_origins),
    ]
)

FRONTEND_ORIGINS = _frontend_origins
FRONTEND_ORIGIN = (FRONTEND_ORIGINS[0] if FRONTEND_ORIGINS else "").rstrip("/")


# Cookies ----------------------------------------------------------------------
COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
COOKIE_SECURE = _env_bool("COOKIE_SECURE", IS_PRODUCTION)
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")


# Google OAuth -----------------------------------------------------------------
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
OAUTH_REDIRECT_URL = os.getenv(
    "OAUTH_REDIRECT_URL", "http://127.0.0.1:5000/api/auth/google/callback"
)
# HS256 secret used to verify JWT access tokens issued by an identity broker.
OAUTH_ASSERTION_SECRET = os.getenv("OAUTH_ASSERTION_SECRET") or None
OAUTH_DEMO_TOKENS = _env_bool("OAUTH_DEMO_TOKENS", False)
OAUTH_HTTP_TIMEOUT = _env_float("OAUTH_HTTP_TIMEOUT", 10.0)


# Storage ----------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL") or None
DB_RESET = _env_bool("DB_RESET", False)
UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
MAX_UPLOAD_BYTES = _env_int("MAX_UPLOAD_BYTES", 5 * 1024 * 1024)


# Administration ---------------------------------------------------------------
SUPER_USER_EMAILS = _unique(
    email.lower() for email in _split_csv(os.getenv("SUPER_USER_EMAILS"))
)


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "APP_ENV",
    "BCRYPT_ROUNDS",
    "COOKIE_DOMAIN",
    "COOKIE_SAMESITE",
    "COOKIE_SECURE",
    "DATABASE_URL",
    "DB_RESET",
    "FRONTEND_ORIGIN",
    "FRONTEND_ORIGINS",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "IS_PRODUCTION",
    "JWT_SECRET",
    "LOG_LEVEL",
    "MAX_UPLOAD_BYTES",
    "OAUTH_ASSERTION_SECRET",
    "OAUTH_DEMO_TOKENS",
    "OAUTH_HTTP_TIMEOUT",
    "OAUTH_REDIRECT_URL",
    "SESSION_SECRET",
    "SUPER_USER_EMAILS",
    "UPLOAD_DIR",
]
