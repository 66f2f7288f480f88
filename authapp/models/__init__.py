"""Database model exports."""

from .user import Gender, OAuthProvider, User

__all__ = [
    "Gender",
    "OAuthProvider",
    "User",
]
