"""Request payload validation."""

from __future__ import annotations

import re
from typing import Annotated, Any, Callable, Optional, Type, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError
from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from ..models import Gender, OAuthProvider
from ..services.errors import ValidationFailed

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]")
PASSWORD_RULES_MESSAGE = (
    "Password must contain at least one uppercase letter, one lowercase letter, "
    "one number, and one special character"
)
# bcrypt only looks at the first 72 bytes.
PASSWORD_MAX_BYTES = 72

ModelT = TypeVar("ModelT", bound=BaseModel)


def _check_email(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("Please enter a valid email address")
    try:
        _, normalized = validate_email(value.strip())
    except PydanticCustomError as exc:
        raise ValueError("Please enter a valid email address") from exc
    return normalized


def _check_new_password(value: Any) -> str:
    if not isinstance(value, str) or len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError("Password must be at most 72 bytes")
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(PASSWORD_RULES_MESSAGE)
    return value


def _required(message: str) -> Callable[[Any], str]:
    def check(value: Any) -> str:
        if not isinstance(value, str) or not value:
            raise ValueError(message)
        return value

    return check


def _check_name(value: Any) -> str:
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise ValueError("Name is required")
    if len(name) > 100:
        raise ValueError("Name must be less than 100 characters")
    return name


def _check_age(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("Age must be a number")
    try:
        age = int(str(value).strip())
    except (TypeError, ValueError) as exc:
        raise ValueError("Age must be a number") from exc
    if age < 1:
        raise ValueError("Age must be at least 1")
    if age > 120:
        raise ValueError("Age must be less than 120")
    return age


def _check_gender(value: Any) -> Gender:
    if isinstance(value, Gender):
        return value
    try:
        return Gender(str(value).strip().upper())
    except ValueError as exc:
        raise ValueError("Please select a valid gender") from exc


def _check_provider(value: Any) -> OAuthProvider:
    if isinstance(value, OAuthProvider):
        return value
    try:
        return OAuthProvider(str(value).strip().upper())
    except ValueError as exc:
        raise ValueError(f"Unsupported auth provider: {value}") from exc


def _optional(check: Callable[[Any], Any]) -> Callable[[Any], Any]:
    """Let blank values through as None, validate everything else."""

    def wrapper(value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        return check(value)

    return wrapper


EmailAddress = Annotated[str, BeforeValidator(_check_email)]
NewPassword = Annotated[str, BeforeValidator(_check_new_password)]
DisplayName = Annotated[str, BeforeValidator(_check_name)]
Age = Annotated[int, BeforeValidator(_check_age)]
GenderChoice = Annotated[Gender, BeforeValidator(_check_gender)]


class SignupForm(BaseModel):
    email: EmailAddress
    password: NewPassword
    name: DisplayName
    age: Age
    gender: GenderChoice


class LoginRequest(BaseModel):
    email: EmailAddress
    password: Annotated[str, BeforeValidator(_required("Password is required"))]


class ProfileForm(BaseModel):
    name: DisplayName
    age: Age
    gender: GenderChoice


class PasswordResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Annotated[
        str, BeforeValidator(_required("Current password is required"))
    ] = Field(alias="currentPassword")
    new_password: NewPassword = Field(alias="newPassword")


class OAuthUserData(BaseModel):
    """Optional profile fields sent with an OAuth login."""

    name: Annotated[Optional[str], BeforeValidator(_optional(_check_name))] = None
    age: Annotated[Optional[int], BeforeValidator(_optional(_check_age))] = None
    gender: Annotated[Optional[Gender], BeforeValidator(_optional(_check_gender))] = None


class OAuthLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    provider: Annotated[OAuthProvider, BeforeValidator(_check_provider)]
    access_token: Annotated[
        str, BeforeValidator(_required("Access token is required"))
    ] = Field(alias="accessToken")
    user_data: Optional[OAuthUserData] = Field(default=None, alias="userData")


class OAuthCompleteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_data: OAuthUserData = Field(alias="userData")


def first_error_message(exc: Any) -> str:
    """Human readable message for the first validation error."""

    errors = exc.errors() if hasattr(exc, "errors") else []
    if not errors:
        return "Invalid request data"
    error = errors[0]
    if error.get("type") == "missing":
        field = next(
            (str(part) for part in reversed(error.get("loc", ())) if isinstance(part, str)),
            "",
        )
        return f"{field} is required" if field else "Invalid request data"
    message = str(error.get("msg") or "Invalid request data")
    return message.removeprefix("Value error, ")


def parse_form(model: Type[ModelT], **data: Any) -> ModelT:
    """Validate form fields, raising ValidationFailed with the first message."""

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValidationFailed(first_error_message(exc)) from exc


__all__ = [
    "LoginRequest",
    "OAuthCompleteRequest",
    "OAuthLoginRequest",
    "OAuthUserData",
    "PasswordResetRequest",
    "ProfileForm",
    "SignupForm",
    "first_error_message",
    "parse_form",
]
