"""
Per-buyer rate limiter for purchase initiation.
"""
import logging

import redis

from groupshare.core.config import settings

logger = logging.getLogger(__name__)


def check_purchase_rate_limit(user_id: str) -> bool:
    """
    Check if a purchase initiation is allowed. Returns True if allowed, False if rate limited.
    Increments counter on each call.
    """
    try:
        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        key = f"purchase_attempts:{user_id}"
        current = client.incr(key)
        if current == 1:
            client.expire(key, settings.purchase_rate_limit_window_seconds)
        if current > settings.purchase_rate_limit_attempts:
            logger.warning("purchase_rate_limited", extra={"user_id": user_id, "attempts": current})
            return False
        return True
    except redis.RedisError as e:
        logger.warning("purchase_rate_limit_redis_error", extra={"error": str(e)})
        return True  # Fail open - allow purchase if Redis is down
