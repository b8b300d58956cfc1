"""FastAPI dependencies for authentication.

Dependencies:
  get_current_user  → decode the bearer JWT, check revocation, load the User
  get_bearer_token  → the raw bearer token (used by logout)
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from futurehuman.auth.jwt import decode_token
from futurehuman.auth.revocation import TokenRevocation
from futurehuman.database import get_db
from futurehuman.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_bearer_token(token: str = Depends(oauth2_scheme)) -> str:
    return token


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    The decoded payload is stashed on the user as `_token_payload` so
    downstream handlers can read claims without decoding again.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise _unauthorized("Invalid or expired token")

    if await TokenRevocation.is_revoked(token):
        raise _unauthorized("Token has been revoked")

    if await TokenRevocation.is_user_revoked(user_id, float(payload.get("iat", 0))):
        raise _unauthorized("Session expired. Please log in again.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise _unauthorized("User not found or inactive")

    user._token_payload = payload  # type: ignore[attr-defined]
    return user
