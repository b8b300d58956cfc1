"""JWT token creation and decoding.

Token claims:
  - sub:   user ID
  - role:  user role string
  - type:  "access" | "refresh"
  - iat:   issue timestamp (compared against user-wide revocations)
  - exp:   expiry timestamp
  - jti:   unique token id (two tokens minted in the same second differ)
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from futurehuman.config import settings

ALGORITHM = settings.jwt_algorithm


def _encode(payload: dict, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {**payload, "iat": now, "exp": now + lifetime, "jti": uuid.uuid4().hex}
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(
    user_id: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    return _encode(
        {"sub": user_id, "role": role, "type": "access"},
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str, role: str) -> str:
    return _encode(
        {"sub": user_id, "role": role, "type": "refresh"},
        timedelta(days=settings.refresh_token_expire_days),
    )


def decode_token(token: str) -> dict:
    """Decode and validate a JWT. Returns empty dict on failure."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return {}
