"""Password hashing and session token helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Response

from .config import (
    BCRYPT_ROUNDS,
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    JWT_SECRET,
)
from .time import utcnow


SESSION_COOKIE = "token"
SESSION_TTL = timedelta(days=7)
JWT_ALGORITHM = "HS256"


class InvalidSessionToken(Exception):
    """Raised when a session token is malformed, forged or expired."""


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    email: str
    expires_at: datetime


# Passwords --------------------------------------------------------------------
def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    """Check a password against a stored bcrypt hash."""

    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed hash or an over-long password.
        return False


# Session tokens ---------------------------------------------------------------
def issue_session_token(user_id: Any, email: str, *, now: Optional[datetime] = None) -> str:
    """Mint a signed token valid for SESSION_TTL bound to the account."""

    issued_at = now or utcnow()
    payload: Dict[str, Any] = {
        "userId": str(user_id),
        "email": email,
        "iat": issued_at,
        "exp": issued_at + SESSION_TTL,
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_session_token(token: str) -> SessionClaims:
    try:
        data = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidSessionToken(str(exc)) from exc

    user_id = data.get("userId")
    email = data.get("email")
    if not user_id or not email:
        raise InvalidSessionToken("Token is missing account claims")
    return SessionClaims(
        user_id=str(user_id),
        email=str(email),
        expires_at=datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc),
    )


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=int(SESSION_TTL.total_seconds()),
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        domain=COOKIE_DOMAIN,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        SESSION_COOKIE,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        domain=COOKIE_DOMAIN,
    )


__all__ = [
    "InvalidSessionToken",
    "JWT_ALGORITHM",
    "SESSION_COOKIE",
    "SESSION_TTL",
    "SessionClaims",
    "clear_session_cookie",
    "decode_session_token",
    "hash_password",
    "issue_session_token",
    "set_session_cookie",
    "verify_password",
]
