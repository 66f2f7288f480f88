"""Authentication routes: password accounts, OAuth login and sessions."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode, urlsplit

from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse
from sqlmodel import Session

from ...core import FRONTEND_ORIGIN, config, get_session
from ...core.security import clear_session_cookie, set_session_cookie
from ...models import OAuthProvider, User
from ...services import accounts, oauth as verifier
from ...services.errors import AccountNotFound, AuthAppError, ValidationFailed
from ...services.media import ImageUpload
from ...services.reconciler import (
    ExternalIdentity,
    SupplementalProfile,
    reconcile_oauth_login,
)
from ...services.users import user_to_dict
from ..deps import get_current_user
from ..schemas import (
    LoginRequest,
    OAuthCompleteRequest,
    OAuthLoginRequest,
    OAuthUserData,
    PasswordResetRequest,
    SignupForm,
    parse_form,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

PENDING_OAUTH_KEY = "pending_oauth"

oauth = OAuth()
oauth.register(
    name="google",
    # Placeholder credentials let the app boot; /google/start refuses to run without real ones.
    client_id=config.GOOGLE_CLIENT_ID or "unconfigured",
    client_secret=config.GOOGLE_CLIENT_SECRET or "unconfigured",
    server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
    client_kwargs={"scope": "openid email profile"},
)


async def read_upload(upload: Optional[UploadFile]) -> Optional[ImageUpload]:
    """Buffer a multipart image; an absent or unnamed part means no image."""

    if upload is None or not upload.filename:
        return None
    content = await upload.read()
    return ImageUpload(
        content=content,
        content_type=upload.content_type or "",
        filename=upload.filename,
    )


def _profile_from(data: Optional[OAuthUserData]) -> Optional[SupplementalProfile]:
    if data is None:
        return None
    return SupplementalProfile(name=data.name, age=data.age, gender=data.gender)


def _session_response(payload: dict, token: str, status_code: int = 200) -> JSONResponse:
    response = JSONResponse(payload, status_code=status_code)
    set_session_cookie(response, token)
    return response


def _frontend_url(path: str, **params: str) -> str:
    url = f"{FRONTEND_ORIGIN}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return url


def safe_next_url(value: Optional[str]) -> str:
    """Resolve a post-login target to a frontend URL, else the frontend root.

    Absolute URLs must match a configured frontend origin exactly (scheme and
    host:port); relative targets must be plain paths.
    """

    if not value or "\\" in value:
        return FRONTEND_ORIGIN
    parts = urlsplit(value)
    if not parts.scheme and not parts.netloc:
        if value.startswith("/") and not value.startswith("//"):
            return f"{FRONTEND_ORIGIN}{value}"
        return FRONTEND_ORIGIN
    for origin in config.FRONTEND_ORIGINS:
        allowed = urlsplit(origin.rstrip("/"))
        if (parts.scheme.lower(), parts.netloc.lower()) == (
            allowed.scheme.lower(),
            allowed.netloc.lower(),
        ):
            return value
    logger.warning("Ignoring off-site login redirect target")
    return FRONTEND_ORIGIN


# Password accounts ------------------------------------------------------------
@router.post("/signup", status_code=201)
async def signup(
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    name: Optional[str] = Form(None),
    age: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    session: Session = Depends(get_session),
) -> JSONResponse:
    form = parse_form(
        SignupForm, email=email, password=password, name=name, age=age, gender=gender
    )
    picture = await read_upload(profile_picture)
    # Password hashing blocks, so it runs in a worker thread.
    result = await asyncio.to_thread(
        accounts.signup,
        session,
        email=form.email,
        password=form.password,
        name=form.name,
        age=form.age,
        gender=form.gender,
        picture=picture,
    )
    return _session_response(
        {"message": "User created successfully", "user": user_to_dict(result.user)},
        result.token,
        status_code=201,
    )


@router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session)) -> JSONResponse:
    result = accounts.login(session, email=payload.email, password=payload.password)
    return _session_response(
        {"message": "Login successful", "user": user_to_dict(result.user)}, result.token
    )


@router.post("/reset-password")
def reset_password(
    payload: PasswordResetRequest,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    accounts.reset_password(
        session,
        user.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return {"message": "Password updated successfully"}


@router.post("/logout")
def logout(request: Request) -> JSONResponse:
    request.session.clear()
    response = JSONResponse({"message": "Logout successful"})
    clear_session_cookie(response)
    return response


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}


# OAuth ------------------------------------------------------------------------
@router.post("/oauth/login")
async def oauth_login(
    payload: OAuthLoginRequest, session: Session = Depends(get_session)
) -> JSONResponse:
    identity = await verifier.verify_oauth_token(payload.provider, payload.access_token)
    result = await asyncio.to_thread(
        reconcile_oauth_login,
        session,
        payload.provider,
        identity,
        _profile_from(payload.user_data),
    )
    return _session_response(
        {
            "message": "OAuth login successful",
            "user": user_to_dict(result.user),
            "isNewUser": result.is_new_account,
        },
        result.token,
    )


@router.post("/oauth/complete")
def oauth_complete(
    payload: OAuthCompleteRequest,
    request: Request,
    session: Session = Depends(get_session),
) -> JSONResponse:
    """Finish a redirect login that needed a new account."""

    pending = request.session.get(PENDING_OAUTH_KEY)
    if not pending:
        raise ValidationFailed("No pending OAuth sign-in. Please start again.")

    try:
        provider = OAuthProvider(pending["provider"])
        identity = ExternalIdentity.from_dict(pending["identity"])
    except (KeyError, TypeError, ValueError) as exc:
        request.session.pop(PENDING_OAUTH_KEY, None)
        raise ValidationFailed("No pending OAuth sign-in. Please start again.") from exc

    result = reconcile_oauth_login(
        session, provider, identity, _profile_from(payload.user_data)
    )
    request.session.pop(PENDING_OAUTH_KEY, None)
    return _session_response(
        {
            "message": "OAuth login successful",
            "user": user_to_dict(result.user),
            "isNewUser": result.is_new_account,
        },
        result.token,
    )


@router.get("/google/start")
async def google_start(request: Request, next: Optional[str] = None):
    if not config.GOOGLE_CLIENT_ID or not config.GOOGLE_CLIENT_SECRET:
        raise HTTPException(
            status_code=500,
            detail="Google OAuth not configured. Check GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET.",
        )

    if next:
        request.session["next"] = next
    return await oauth.google.authorize_redirect(request, config.OAUTH_REDIRECT_URL)


@router.get("/google/callback")
async def google_callback(request: Request, session: Session = Depends(get_session)):
    try:
        token = await oauth.google.authorize_access_token(request)
    except OAuthError as exc:
        logger.info("Google authorization failed: %s", exc.error)
        return RedirectResponse(_frontend_url("/login", error="oauth_failed"), status_code=302)

    userinfo = token.get("userinfo") or await oauth.google.userinfo(token=token)
    try:
        identity = verifier.identity_from_userinfo(userinfo)
        result = await asyncio.to_thread(
            reconcile_oauth_login, session, OAuthProvider.GOOGLE, identity
        )
    except AccountNotFound:
        request.session[PENDING_OAUTH_KEY] = {
            "provider": OAuthProvider.GOOGLE.value,
            "identity": identity.to_dict(),
        }
        return RedirectResponse(_frontend_url("/signup", oauth="pending"), status_code=302)
    except AuthAppError as exc:
        return RedirectResponse(_frontend_url("/login", error=exc.code), status_code=302)

    next_url = safe_next_url(request.session.pop("next", None))
    if result.is_new_account:
        next_url = _frontend_url("/profile")

    response = RedirectResponse(next_url, status_code=302)
    set_session_cookie(response, result.token)
    return response


__all__ = ["PENDING_OAUTH_KEY", "oauth", "read_upload", "router", "safe_next_url"]
