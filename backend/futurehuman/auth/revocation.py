"""JWT token revocation using a Redis blacklist.

Revokes single tokens on logout and every earlier token of a user on
password change. Entries expire with the tokens they cover.
"""

import logging
import time

from futurehuman.config import settings
from futurehuman.utils.cache import get_redis

logger = logging.getLogger(__name__)


class TokenRevocation:
    """Manage JWT token revocation with Redis."""

    @staticmethod
    async def revoke_token(token: str, expires_at: float) -> bool:
        """Add token to the revocation list until its natural expiry."""
        ttl = int(expires_at - time.time())
        if ttl <= 0:
            return True

        try:
            redis_client = await get_redis()
            await redis_client.setex(f"revoked:{token}", ttl, str(int(time.time())))
            return True
        except Exception as e:
            logger.error(f"Failed to revoke token: {e}")
            return False

    @staticmethod
    async def is_revoked(token: str) -> bool:
        try:
            redis_client = await get_redis()
            return await redis_client.exists(f"revoked:{token}") > 0
        except Exception as e:
            logger.error(f"Failed to check token revocation: {e}")
            # Fail closed
            return True

    @staticmethod
    async def revoke_all_user_tokens(user_id: str) -> bool:
        """Revoke every token issued to a user before now.

        Tokens issued afterwards (e.g. the login that follows a password
        change) stay valid because their `iat` is newer than the marker.
        """
        duration = settings.refresh_token_expire_days * 86400
        try:
            redis_client = await get_redis()
            await redis_client.setex(
                f"revoked:user:{user_id}", duration, str(int(time.time()))
            )
            return True
        except Exception as e:
            logger.error(f"Failed to revoke user tokens: {e}")
            return False

    @staticmethod
    async def is_user_revoked(user_id: str, issued_at: float) -> bool:
        try:
            redis_client = await get_redis()
            marker = await redis_client.get(f"revoked:user:{user_id}")
        except Exception as e:
            logger.error(f"Failed to check user revocation: {e}")
            return True
        if marker is None:
            return False
        return issued_at < float(marker)
