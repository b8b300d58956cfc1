"""Auth routes: register, login, refresh, logout, me.

Route overview:
  POST /register  — self-registration, returns a token pair
  POST /login     — email + password login
  POST /refresh   — exchange a refresh token for a new token pair
  POST /logout    — revoke the presented access (and refresh) token
  GET  /me        — return the current user profile
"""

from fastapi import APIRouter, Body, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from futurehuman.auth.deps import get_bearer_token, get_current_user
from futurehuman.auth.jwt import create_access_token, create_refresh_token, decode_token
from futurehuman.auth.password import hash_password, verify_password
from futurehuman.auth.revocation import TokenRevocation
from futurehuman.database import get_db
from futurehuman.models.user import User, UserRole
from futurehuman.schemas.auth import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from futurehuman.schemas.common import OkResponse

router = APIRouter()


# ── Helpers ──────────────────────────────────────────────────

def build_user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        full_name=user.full_name,
        role=user.role.value,
        phone_number=user.phone_number,
        address=user.address,
        postal_code=user.postal_code,
        country=user.country,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _build_token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id=user.id, role=user.role.value),
        refresh_token=create_refresh_token(user_id=user.id, role=user.role.value),
        user=build_user_out(user),
    )


# ── POST /register ──────────────────────────────────────────

@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    email = body.email.lower().strip()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Email already registered")

    user = User(
        email=email,
        hashed_password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=UserRole.USER,
        phone_number=body.phone_number,
        address=body.address,
        postal_code=body.postal_code,
        country=body.country,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    return _build_token_response(user)


# ── POST /login ──────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(User).where(User.email == body.email.lower().strip()))
    user = result.scalar_one_or_none()

    if not user or not verify_password(body.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return _build_token_response(user)


# ── POST /refresh ────────────────────────────────────────────

@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest, db: AsyncSession = Depends(get_db)):
    """Exchange a refresh token for a new access + refresh token pair."""
    payload = decode_token(body.refresh_token)
    user_id = payload.get("sub")
    if payload.get("type") != "refresh" or not user_id:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    if await TokenRevocation.is_revoked(body.refresh_token) or await TokenRevocation.is_user_revoked(
        user_id, float(payload.get("iat", 0))
    ):
        raise HTTPException(status_code=401, detail="Refresh token has been revoked")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")

    # Rotate: the presented refresh token cannot be used twice
    await TokenRevocation.revoke_token(body.refresh_token, float(payload["exp"]))
    return _build_token_response(user)


# ── POST /logout ─────────────────────────────────────────────

@router.post("/logout", response_model=OkResponse)
async def logout(
    body: RefreshRequest | None = Body(default=None),
    token: str = Depends(get_bearer_token),
    user: User = Depends(get_current_user),
):
    """Revoke the access token (and the refresh token, when sent)."""
    payload = getattr(user, "_token_payload", {})
    await TokenRevocation.revoke_token(token, float(payload.get("exp", 0)))

    if body is not None:
        refresh_payload = decode_token(body.refresh_token)
        if refresh_payload.get("sub") == user.id:
            await TokenRevocation.revoke_token(
                body.refresh_token, float(refresh_payload.get("exp", 0))
            )
    return OkResponse()


# ── GET /me ──────────────────────────────────────────────────

@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)):
    """Return the current authenticated user's profile."""
    return build_user_out(user)
