from typing import Optional

import redis

from a11y_engine.platform.config import settings

_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """Return a process-wide Redis client built from REDIS_URL."""
    global _client

    if _client is None:
        if not settings.REDIS_URL:
            raise RuntimeError("REDIS_URL is not configured")
        _client = redis.Redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _client
