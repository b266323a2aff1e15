import redis.asyncio as aioredis
import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

redis_clients = {}


def get_redis_client() -> Optional[aioredis.Redis]:
    """
    Return the shared default client, or None when REDIS_URL is not configured.
    """
    if 'default' not in redis_clients:
        redis_url = os.getenv("REDIS_URL")
        if not redis_url:
            return None
        logger.info(f"Creating new default Redis client with: URL {redis_url}")
        redis_clients['default'] = aioredis.from_url(redis_url, decode_responses=True)

    return redis_clients['default']


async def create_redis_client(redis_url: Optional[str] = None) -> aioredis.Redis:
    if not redis_url:
        redis_url = os.getenv("REDIS_URL", "redis://localhost:6379")

    if redis_url in redis_clients:
        return redis_clients[redis_url]

    client = aioredis.from_url(redis_url, decode_responses=True)
    redis_clients[redis_url] = client
    return client


async def close_redis_clients() -> None:
    for name, client in list(redis_clients.items()):
        await client.aclose()
        logger.debug(f"Closed Redis client {name}")
    redis_clients.clear()
