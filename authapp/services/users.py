"""Helpers for user domain objects."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from ..core.time import isoformat_utc
from ..models import User


def enum_value(value: Any) -> Optional[str]:
    if isinstance(value, Enum):
        return value.value
    return value


def user_to_dict(user: User, *, include_oauth_id: bool = True) -> Dict[str, Any]:
    """Serialise a user to the API shape; the password hash never leaves."""

    data: Dict[str, Any] = {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "age": user.age,
        "gender": enum_value(user.gender),
        "profilePicture": user.profile_picture,
        "oauthProvider": enum_value(user.oauth_provider),
        "createdAt": isoformat_utc(user.created_at),
        "updatedAt": isoformat_utc(user.updated_at),
    }
    if include_oauth_id:
        data["oauthId"] = user.oauth_id
    return data


__all__ = ["enum_value", "user_to_dict"]
