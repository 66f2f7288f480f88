"""Map a verified external identity onto zero or one local account.

The reconciler decides whether an OAuth login signs in an existing account,
creates a new one, or is refused because the email belongs to an account that
must be accessed another way. It then issues the session token.

Lookup order is explicit: the linked ``(provider, external_id)`` pair first,
the email claim second.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from sqlmodel import Session

from ..core.security import issue_session_token
from ..core.time import utcnow
from ..models import Gender, OAuthProvider, User
from . import media
from .accounts import find_user_by_email, find_user_by_identity, store_guard
from .errors import AccountNotFound, ConflictDifferentProvider, ConflictRequiresPassword
from .users import enum_value

logger = logging.getLogger(__name__)


@dataclass
class ExternalIdentity:
    """Normalized identity vouched for by an OAuth provider."""

    external_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["gender"] = enum_value(self.gender)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExternalIdentity":
        gender = data.get("gender")
        return cls(
            external_id=str(data["external_id"]),
            email=str(data["email"]),
            name=data.get("name"),
            picture=data.get("picture"),
            age=data.get("age"),
            gender=Gender(gender) if gender else None,
        )


@dataclass
class SupplementalProfile:
    """User-supplied profile fields sent alongside an OAuth login."""

    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None


@dataclass
class ReconcileResult:
    user: User
    is_new_account: bool
    token: str


def find_account(
    session: Session, provider: OAuthProvider, identity: ExternalIdentity
) -> Optional[User]:
    user = find_user_by_identity(session, provider, identity.external_id)
    if user is None:
        user = find_user_by_email(session, identity.email)
    return user


def _create_account(
    session: Session,
    provider: OAuthProvider,
    identity: ExternalIdentity,
    profile: SupplementalProfile,
) -> User:
    user = User(
        email=identity.email,
        name=profile.name or identity.name or identity.email.split("@")[0],
        profile_picture=identity.picture,
        oauth_provider=provider,
        oauth_id=identity.external_id,
        age=profile.age or identity.age,
        gender=profile.gender or identity.gender,
    )
    # A concurrent login for the same email loses on the unique index and
    # surfaces as a retryable AccountConflict.
    with store_guard(session):
        session.add(user)
        session.commit()
        session.refresh(user)
    logger.info("Created %s account %s", provider.value, user.id)
    return user


def _pending_changes(
    user: User,
    provider: OAuthProvider,
    identity: ExternalIdentity,
    profile: Optional[SupplementalProfile],
) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    if profile is not None:
        if profile.name and profile.name != user.name:
            changes["name"] = profile.name
        if profile.age and profile.age != user.age:
            changes["age"] = profile.age
        if profile.gender and profile.gender != user.gender:
            changes["gender"] = profile.gender
        if identity.picture and identity.picture != user.profile_picture:
            changes["profile_picture"] = identity.picture
    if not user.oauth_provider or not user.oauth_id:
        changes["oauth_provider"] = provider
        changes["oauth_id"] = identity.external_id
    return changes


def _check_conflicts(user: User, provider: OAuthProvider, identity: ExternalIdentity) -> None:
    linked = user.oauth_provider
    if user.has_password and (not linked or linked != provider):
        logger.info("OAuth login refused for %s: account is password protected", user.id)
        raise ConflictRequiresPassword(identity.email)
    if linked and linked != provider:
        logger.info("OAuth login refused for %s: linked to %s", user.id, enum_value(linked))
        raise ConflictDifferentProvider(identity.email, enum_value(linked))


def reconcile_oauth_login(
    session: Session,
    provider: OAuthProvider,
    identity: ExternalIdentity,
    profile: Optional[SupplementalProfile] = None,
) -> ReconcileResult:
    """Resolve an OAuth login to an account, creating or updating as needed.

    Raises AccountNotFound when no account matches and no profile was given,
    ConflictRequiresPassword / ConflictDifferentProvider when the email belongs
    to an account that cannot be entered through this provider, and
    AccountConflict / StoreUnavailable for store failures. No record is
    written on any error path.
    """

    with store_guard(session):
        user = find_account(session, provider, identity)

    is_new_account = False
    if user is None:
        if profile is None:
            logger.info("No account for %s identity, new account flow required", provider.value)
            raise AccountNotFound()
        user = _create_account(session, provider, identity, profile)
        is_new_account = True
    else:
        _check_conflicts(user, provider, identity)
        changes = _pending_changes(user, provider, identity, profile)
        if changes:
            old_picture = user.profile_picture
            for field, value in changes.items():
                setattr(user, field, value)
            user.updated_at = utcnow()
            with store_guard(session):
                session.add(user)
                session.commit()
                session.refresh(user)
            if "profile_picture" in changes:
                media.delete_image(old_picture)
            logger.info("Updated account %s fields: %s", user.id, sorted(changes))

    # Linked accounts without age or gender still need onboarding.
    if user.oauth_provider and user.profile_incomplete:
        is_new_account = True

    token = issue_session_token(user.id, user.email)
    return ReconcileResult(user=user, is_new_account=is_new_account, token=token)


__all__ = [
    "ExternalIdentity",
    "ReconcileResult",
    "SupplementalProfile",
    "find_account",
    "reconcile_oauth_login",
]
