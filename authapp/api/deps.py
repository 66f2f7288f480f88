"""Shared FastAPI dependencies for session authentication."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from ..core import get_session
from ..core.security import SESSION_COOKIE, InvalidSessionToken, decode_session_token
from ..models import User
from ..services.accounts import get_user, store_guard

logger = logging.getLogger(__name__)


def extract_token(request: Request) -> Optional[str]:
    """Bearer header first, session cookie as fallback."""

    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() == "bearer" and value.strip():
        return value.strip()
    return request.cookies.get(SESSION_COOKIE) or None


def _load_user(session: Session, token: str) -> User:
    try:
        claims = decode_session_token(token)
    except InvalidSessionToken as exc:
        logger.debug("Rejected session token: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    with store_guard(session):
        user = get_user(session, claims.user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def get_current_user(request: Request, session: Session = Depends(get_session)) -> User:
    token = extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Access token required")
    return _load_user(session, token)


def get_optional_user(
    request: Request, session: Session = Depends(get_session)
) -> Optional[User]:
    token = extract_token(request)
    if not token:
        return None
    try:
        return _load_user(session, token)
    except HTTPException:
        return None


__all__ = ["extract_token", "get_current_user", "get_optional_user"]
