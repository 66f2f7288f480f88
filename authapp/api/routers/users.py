"""User profile and maintenance endpoints."""

from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlmodel import Session

from ...core import get_session
from ...core.security import clear_session_cookie
from ...models import User
from ...services import accounts
from ...services.errors import UserNotFound
from ...services.users import user_to_dict
from ..deps import get_current_user, get_optional_user
from ..schemas import ProfileForm, parse_form
from .auth import read_upload

router = APIRouter(prefix="/api/users", tags=["users"])


@router.put("/profile")
async def update_profile(
    name: Optional[str] = Form(None),
    age: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    form = parse_form(ProfileForm, name=name, age=age, gender=gender)
    picture = await read_upload(profile_picture)
    updated = await asyncio.to_thread(
        accounts.update_profile,
        session,
        user,
        name=form.name,
        age=form.age,
        gender=form.gender,
        picture=picture,
    )
    return {"message": "Profile updated successfully", "user": user_to_dict(updated)}


@router.get("")
def list_users(
    page: int = Query(1),
    limit: int = Query(accounts.DEFAULT_PAGE_SIZE),
    session: Session = Depends(get_session),
):
    """Newest accounts first, paginated."""

    return accounts.list_users(session, page=page, limit=limit)


@router.get("/{user_id}")
def get_user(
    user_id: str,
    viewer: Optional[User] = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    with accounts.store_guard(session):
        user = accounts.get_user(session, user_id)
    if not user:
        raise UserNotFound()
    # Only the owner sees their provider-side id.
    is_owner = viewer is not None and viewer.id == user.id
    return {"user": user_to_dict(user, include_oauth_id=is_owner)}


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> JSONResponse:
    actor_id = str(user.id)
    deleted = accounts.delete_user(session, user_id, actor=user)
    response = JSONResponse(
        {"message": "User deleted successfully", "deletedUser": deleted}
    )
    if deleted["id"] == actor_id:
        clear_session_cookie(response)
    return response


__all__ = ["router"]
