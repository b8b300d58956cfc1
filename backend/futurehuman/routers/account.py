"""Account routes: the signed-in user's own profile.

  GET   /           → profile
  PATCH /           → update profile fields (email/role are immutable)
  PATCH /password   → change password, revoking every earlier token
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from futurehuman.auth.deps import get_current_user
from futurehuman.auth.password import hash_password, verify_password
from futurehuman.auth.revocation import TokenRevocation
from futurehuman.database import get_db
from futurehuman.models.user import User
from futurehuman.routers.auth import build_user_out
from futurehuman.schemas.account import AccountUpdate, ChangePasswordRequest
from futurehuman.schemas.auth import UserOut
from futurehuman.schemas.common import OkResponse

router = APIRouter()


@router.get("/", response_model=UserOut)
async def get_account(user: User = Depends(get_current_user)):
    return build_user_out(user)


@router.patch("/", response_model=UserOut)
async def update_account(
    body: AccountUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updates = body.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name"):
        if field in updates and not (updates[field] or "").strip():
            raise HTTPException(status_code=400, detail=f"{field} cannot be empty")

    for key, value in updates.items():
        setattr(user, key, value)

    await db.flush()
    await db.refresh(user)
    return build_user_out(user)


@router.patch("/password", response_model=OkResponse)
async def change_password(
    body: ChangePasswordRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not verify_password(body.current_password, user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.hashed_password = hash_password(body.new_password)
    await db.flush()

    await TokenRevocation.revoke_all_user_tokens(user.id)
    return OkResponse()
