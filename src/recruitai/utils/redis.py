"""Redis client management."""

from typing import Optional
import redis.asyncio as redis

_redis_client: Optional[redis.Redis] = None


def get_redis_client(url: Optional[str] = None) -> Optional[redis.Redis]:
    """Get or create the process-wide Redis client.

    Connections are opened lazily on first command. Returns None when no
    Redis URL is configured.

    Args:
        url: Redis URL (only used for initial creation)
    """
    global _redis_client

    if _redis_client is None:
        from ..config import settings
        url = url or settings.REDIS_URL
        if not url:
            return None
        _redis_client = redis.from_url(url, decode_responses=True)

    return _redis_client


async def close_redis():
    """Close Redis connection gracefully."""
    global _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


__all__ = ["get_redis_client", "close_redis"]
