import logging

import redis
from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

# Create Redis connection pool
redis_pool = redis.ConnectionPool.from_url(
    str(settings.REDIS_URL),
    decode_responses=True,
    max_connections=50
)

# Create Redis client
redis_client = redis.Redis(connection_pool=redis_pool)


def get_redis_client() -> redis.Redis:
    """Dependency returning the shared Redis client"""
    return redis_client


class RedisService:
    """Service for Redis operations"""

    @staticmethod
    def check_rate_limit(
        client: redis.Redis,
        identifier: str,
        limit: int = 5,
        window: int = 60
    ) -> bool:
        """
        Check rate limit for an identifier

        Args:
            client: Redis client
            identifier: Unique identifier (e.g., IP)
            limit: Maximum number of requests
            window: Time window in seconds

        Returns:
            True if within limit, False if exceeded
        """
        key = f"rate_limit:{identifier}"

        try:
            current = client.incr(key)
            if current == 1:
                client.expire(key, window)
            return current <= limit
        except redis.RedisError as e:
            logger.warning("Rate limit check skipped for %s: %s", identifier, e)
            return True  # Allow on Redis error
