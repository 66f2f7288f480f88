"""Account store lookups and the password-based account flows."""

from __future__ import annotations

import logging
import math
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, func, select

from ..core import config
from ..core.security import hash_password, issue_session_token, verify_password
from ..core.time import utcnow
from ..models import Gender, OAuthProvider, User
from . import media
from .errors import (
    AccountConflict,
    AuthAppError,
    DuplicateEmail,
    Forbidden,
    IncorrectPassword,
    InvalidCredentials,
    NoPasswordSet,
    StoreUnavailable,
    UserNotFound,
)
from .users import enum_value, user_to_dict

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class AuthResult:
    user: User
    token: str


@contextmanager
def store_guard(
    session: Session,
    on_conflict: Callable[[], AuthAppError] = AccountConflict,
) -> Iterator[None]:
    """Translate store failures into domain errors, rolling the session back."""

    try:
        yield
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Unique constraint violated: %s", exc.orig)
        raise on_conflict() from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Account store unavailable")
        raise StoreUnavailable() from exc


# Lookups ----------------------------------------------------------------------
def find_user_by_email(session: Session, email: str) -> Optional[User]:
    return session.exec(select(User).where(User.email == email)).first()


def find_user_by_identity(
    session: Session, provider: OAuthProvider, external_id: str
) -> Optional[User]:
    return session.exec(
        select(User)
        .where(User.oauth_provider == provider)
        .where(User.oauth_id == external_id)
    ).first()


def get_user(session: Session, user_id: Any) -> Optional[User]:
    if isinstance(user_id, uuid.UUID):
        key = user_id
    else:
        try:
            key = uuid.UUID(str(user_id))
        except (TypeError, ValueError):
            return None
    return session.get(User, key)


def is_admin(user: Optional[User]) -> bool:
    if user is None or not config.SUPER_USER_EMAILS:
        return False
    return (user.email or "").strip().lower() in config.SUPER_USER_EMAILS


# Password flows ---------------------------------------------------------------
def signup(
    session: Session,
    *,
    email: str,
    password: str,
    name: str,
    age: int,
    gender: Gender,
    picture: Optional[media.ImageUpload] = None,
) -> AuthResult:
    """Create a password account and open a session for it."""

    with store_guard(session):
        existing = find_user_by_email(session, email)
    if existing:
        provider = enum_value(existing.oauth_provider)
        logger.info("Signup rejected, email already registered (provider=%s)", provider)
        raise DuplicateEmail(email, existing_provider=provider)

    password_hash = hash_password(password)
    picture_url = media.store_image(picture) if picture else None

    user = User(
        email=email,
        password_hash=password_hash,
        name=name,
        age=age,
        gender=gender,
        profile_picture=picture_url,
    )
    try:
        with store_guard(session, on_conflict=lambda: AccountConflict("User already exists")):
            session.add(user)
            session.commit()
            session.refresh(user)
    except AuthAppError:
        media.delete_image(picture_url)
        raise

    logger.info("User created: %s", user.id)
    return AuthResult(user=user, token=issue_session_token(user.id, user.email))


def login(session: Session, *, email: str, password: str) -> AuthResult:
    """Authenticate by password; every failure looks the same to the caller."""

    with store_guard(session):
        user = find_user_by_email(session, email)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentials()
    logger.info("Password login for user %s", user.id)
    return AuthResult(user=user, token=issue_session_token(user.id, user.email))


def reset_password(
    session: Session, user_id: Any, *, current_password: str, new_password: str
) -> User:
    with store_guard(session):
        user = get_user(session, user_id)
    if not user:
        raise UserNotFound()
    if not user.password_hash:
        raise NoPasswordSet()
    if not verify_password(current_password, user.password_hash):
        raise IncorrectPassword()

    user.password_hash = hash_password(new_password)
    user.updated_at = utcnow()
    with store_guard(session):
        session.add(user)
        session.commit()
        session.refresh(user)
    logger.info("Password updated for user %s", user.id)
    return user


# Profile ----------------------------------------------------------------------
def update_profile(
    session: Session,
    user: User,
    *,
    name: Optional[str] = None,
    age: Optional[int] = None,
    gender: Optional[Gender] = None,
    picture: Optional[media.ImageUpload] = None,
) -> User:
    """Apply non-empty profile fields, replacing the avatar when one is given.

    The previous hosted image is removed only once the new row is committed;
    a failed commit removes the freshly stored image instead.
    """

    old_picture = user.profile_picture
    new_picture = media.store_image(picture) if picture is not None else None
    if new_picture:
        user.profile_picture = new_picture
    if name:
        user.name = name
    if age:
        user.age = age
    if gender:
        user.gender = gender
    user.updated_at = utcnow()

    try:
        with store_guard(session):
            session.add(user)
            session.commit()
            session.refresh(user)
    except AuthAppError:
        media.delete_image(new_picture)
        raise

    if new_picture:
        media.delete_image(old_picture)
    return user


# Listing and deletion ---------------------------------------------------------
def list_users(
    session: Session, *, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
) -> Dict[str, Any]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    with store_guard(session):
        users: List[User] = list(
            session.exec(
                select(User)
                .order_by(User.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).all()
        )
        total_count = session.exec(select(func.count()).select_from(User)).one()

    total_pages = math.ceil(total_count / limit) if total_count else 0
    return {
        "users": [user_to_dict(user, include_oauth_id=False) for user in users],
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalCount": total_count,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }


def delete_user(session: Session, user_id: Any, *, actor: User) -> Dict[str, Any]:
    """Delete an account; only the owner or an administrator may do so."""

    with store_guard(session):
        user = get_user(session, user_id)
    if not user:
        raise UserNotFound()
    if user.id != actor.id and not is_admin(actor):
        raise Forbidden("You can only delete your own account")

    deleted = {
        "id": str(user.id),
        "oauthProvider": enum_value(user.oauth_provider),
    }
    actor_id = actor.id
    picture_url = user.profile_picture
    with store_guard(session):
        session.delete(user)
        session.commit()
    media.delete_image(picture_url)
    logger.info("User %s deleted by %s", deleted["id"], actor_id)
    return deleted


__all__ = [
    "AuthResult",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "delete_user",
    "find_user_by_email",
    "find_user_by_identity",
    "get_user",
    "is_admin",
    "list_users",
    "login",
    "reset_password",
    "signup",
    "store_guard",
    "update_profile",
]
