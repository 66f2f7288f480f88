"""Service layer helpers."""

from .accounts import AuthResult, delete_user, list_users, login, reset_password, signup, update_profile
from .reconciler import ExternalIdentity, ReconcileResult, SupplementalProfile, reconcile_oauth_login
from .users import user_to_dict

__all__ = [
    "AuthResult",
    "ExternalIdentity",
    "ReconcileResult",
    "SupplementalProfile",
    "delete_user",
    "list_users",
    "login",
    "reconcile_oauth_login",
    "reset_password",
    "signup",
    "update_profile",
    "user_to_dict",
]
