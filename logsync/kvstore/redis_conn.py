import redis.asyncio as aioredis
from logsync.logging import logger
from logsync.models.settings_model import Redis
import asyncio
from typing import Optional


class RedisPool:
    _pool: Optional[aioredis.Redis] = None
    _lock = asyncio.Lock()
    _logger = logger.bind(module='RedisPool')

    @staticmethod
    def build_url(redis_settings: Redis) -> str:
        auth = f":{redis_settings.password}@" if redis_settings.password else ""
        scheme = "rediss" if redis_settings.ssl else "redis"
        return f"{scheme}://{auth}{redis_settings.host}:{redis_settings.port}/{redis_settings.db}"

    @classmethod
    async def get_pool(cls, redis_settings: Redis) -> aioredis.Redis:
        """Get or create Redis connection pool."""
        if cls._pool is None:
            async with cls._lock:
                # Double-check locking
                if cls._pool is None:
                    try:
                        cls._logger.info(f"Creating Redis connection pool for {redis_settings.host}:{redis_settings.port}/{redis_settings.db}")
                        pool = aioredis.from_url(
                            cls.build_url(redis_settings),
                            encoding="utf-8",
                            decode_responses=True,
                        )
                        # Test connection
                        await pool.ping()
                        cls._pool = pool
                        cls._logger.success("✅ Successfully connected to Redis.")
                    except Exception as e:
                        cls._logger.error(f"💥 Failed to connect to Redis at {redis_settings.host}:{redis_settings.port}: {e}")
                        raise ConnectionError(f"Failed to initialize Redis pool: {e}") from e
        return cls._pool

    @classmethod
    async def close(cls):
        """Close the Redis connection pool."""
        if cls._pool:
            cls._logger.info("Closing Redis connection pool...")
            await cls._pool.aclose()
            cls._pool = None
            cls._logger.info("Redis connection pool closed.")
