"""Database model for user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from ..core.time import utcnow


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class OAuthProvider(str, Enum):
    GOOGLE = "GOOGLE"
    FACEBOOK = "FACEBOOK"


class User(SQLModel, table=True):
    """Account authenticated by password, a linked OAuth identity, or both."""

    __tablename__ = "user"
    __table_args__ = (
        UniqueConstraint("oauth_provider", "oauth_id", name="uq_user_oauth_identity"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, nullable=False)
    email: str = Field(index=True, unique=True)
    password_hash: Optional[str] = None
    name: str
    age: Optional[int] = None
    gender: Optional[Gender] = None
    profile_picture: Optional[str] = None
    oauth_provider: Optional[OAuthProvider] = Field(default=None, index=True)
    oauth_id: Optional[str] = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def profile_incomplete(self) -> bool:
        return not self.age or not self.gender


__all__ = ["Gender", "OAuthProvider", "User"]
