"""OAuth credential verification.

Turns a provider access token into a normalized ExternalIdentity. Three token
shapes are accepted for Google:

* signed JWT assertions from an identity broker, verified with
  ``OAUTH_ASSERTION_SECRET``;
* ``simple_google_auth_<n>`` demo tokens, only when ``OAUTH_DEMO_TOKENS`` is on;
* plain Google access tokens, checked against the userinfo endpoint.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

import httpx
import jwt

from ..core import config
from ..models import Gender, OAuthProvider
from .errors import VerificationFailed
from .reconciler import ExternalIdentity

logger = logging.getLogger(__name__)

GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
GOOGLE_PEOPLE_URL = "https://people.googleapis.com/v1/people/me"
PEOPLE_FIELDS = "birthdays,genders,names,photos,emailAddresses"
DEMO_TOKEN_PREFIX = "simple_google_auth_"

_GOOGLE_GENDERS = {"male": Gender.MALE, "female": Gender.FEMALE}


def _first(*values: Any) -> Optional[Any]:
    for value in values:
        if value:
            return value
    return None


def _nested(data: Mapping[str, Any], *path: str) -> Optional[Any]:
    current: Any = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def age_from_birthday(birthday: Mapping[str, Any], today: Optional[date] = None) -> Optional[int]:
    """Whole years since a People API birthday; None when the year is hidden."""

    try:
        born = date(int(birthday["year"]), int(birthday["month"]), int(birthday["day"]))
    except (KeyError, TypeError, ValueError):
        return None
    today = today or date.today()
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age if age >= 0 else None


def identity_from_claims(claims: Mapping[str, Any]) -> ExternalIdentity:
    """Extract an identity from broker-issued token claims."""

    external_id = _first(
        claims.get("sub"),
        claims.get("user_id"),
        claims.get("id"),
        _nested(claims, "user", "id"),
    )
    email = _first(claims.get("email"), _nested(claims, "user", "email"))
    if not external_id or not email:
        logger.warning("Assertion missing identity claims: %s", sorted(claims))
        raise VerificationFailed("Missing required user information in token")
    name = _first(
        claims.get("name"),
        claims.get("full_name"),
        _nested(claims, "user_metadata", "full_name"),
        _nested(claims, "user", "user_metadata", "full_name"),
        email,
    )
    picture = _first(
        claims.get("picture"),
        claims.get("avatar_url"),
        _nested(claims, "user_metadata", "avatar_url"),
        _nested(claims, "user", "user_metadata", "avatar_url"),
    )
    return ExternalIdentity(
        external_id=str(external_id), email=str(email), name=name, picture=picture
    )


def _looks_like_jwt(token: str) -> bool:
    if token.count(".") != 2:
        return False
    try:
        jwt.get_unverified_header(token)
    except jwt.PyJWTError:
        return False
    return True


def identity_from_assertion(token: str, secret: Optional[str] = None) -> ExternalIdentity:
    secret = secret or config.OAUTH_ASSERTION_SECRET
    if not secret:
        raise VerificationFailed("Signed OAuth assertions are not accepted")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False, "require": ["exp"]},
        )
    except jwt.PyJWTError as exc:
        logger.info("Rejected OAuth assertion: %s", exc)
        raise VerificationFailed("Invalid JWT token") from exc
    return identity_from_claims(claims)


def identity_from_demo_token(token: str) -> ExternalIdentity:
    suffix = token[len(DEMO_TOKEN_PREFIX):] or "123"
    try:
        number = int(suffix)
    except ValueError:
        number = 123
    return ExternalIdentity(
        external_id=f"google_user_{suffix}",
        email=f"google.user{suffix}@example.com",
        name=f"Google User {number}",
        picture=(
            f"https://ui-avatars.com/api/?name=G{number}"
            "&background=4285f4&color=ffffff&size=150"
        ),
    )


def identity_from_userinfo(userinfo: Mapping[str, Any]) -> ExternalIdentity:
    """Build an identity from a Google userinfo (v2 or OpenID) document."""

    external_id = _first(userinfo.get("id"), userinfo.get("sub"))
    email = userinfo.get("email")
    if not external_id or not email:
        raise VerificationFailed("Unable to read Google profile.")
    name = _first(userinfo.get("name"), str(email).split("@")[0])
    return ExternalIdentity(
        external_id=str(external_id),
        email=str(email),
        name=name,
        picture=userinfo.get("picture"),
    )


def _apply_people_profile(identity: ExternalIdentity, people: Mapping[str, Any]) -> None:
    birthdays = people.get("birthdays") or []
    for entry in birthdays:
        age = age_from_birthday(entry.get("date") or {})
        if age is not None:
            identity.age = age
            break
    genders = people.get("genders") or []
    if genders:
        identity.gender = _GOOGLE_GENDERS.get(str(genders[0].get("value", "")).lower())


async def _fetch_google_identity(client: httpx.AsyncClient, access_token: str) -> ExternalIdentity:
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        r = await client.get(GOOGLE_USERINFO_URL, headers=headers)
        r.raise_for_status()
        identity = identity_from_userinfo(r.json())
    except (httpx.HTTPError, ValueError) as exc:
        logger.info("Google userinfo lookup failed: %s", exc)
        raise VerificationFailed("Invalid Google auth token") from exc

    # Age and gender are optional extras; missing scopes are not an error.
    try:
        r = await client.get(
            GOOGLE_PEOPLE_URL, headers=headers, params={"personFields": PEOPLE_FIELDS}
        )
        r.raise_for_status()
        _apply_people_profile(identity, r.json())
    except (httpx.HTTPError, ValueError) as exc:
        logger.debug("Could not fetch Google People profile: %s", exc)
    return identity


async def verify_google_token(
    access_token: str, *, client: Optional[httpx.AsyncClient] = None
) -> ExternalIdentity:
    if not access_token:
        raise VerificationFailed("Access token required")
    if access_token.startswith(DEMO_TOKEN_PREFIX):
        if not config.OAUTH_DEMO_TOKENS:
            raise VerificationFailed("Invalid Google auth token")
        return identity_from_demo_token(access_token)
    if _looks_like_jwt(access_token):
        return identity_from_assertion(access_token)

    if client is not None:
        return await _fetch_google_identity(client, access_token)
    async with httpx.AsyncClient(timeout=config.OAUTH_HTTP_TIMEOUT) as owned:
        return await _fetch_google_identity(owned, access_token)


async def verify_oauth_token(
    provider: OAuthProvider,
    access_token: str,
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> ExternalIdentity:
    """Validate a provider token and return the identity it vouches for."""

    if provider == OAuthProvider.GOOGLE:
        return await verify_google_token(access_token, client=client)
    raise VerificationFailed(f"Unsupported auth provider: {provider.value}")


__all__ = [
    "DEMO_TOKEN_PREFIX",
    "GOOGLE_PEOPLE_URL",
    "GOOGLE_USERINFO_URL",
    "age_from_birthday",
    "identity_from_assertion",
    "identity_from_claims",
    "identity_from_demo_token",
    "identity_from_userinfo",
    "verify_google_token",
    "verify_oauth_token",
]
