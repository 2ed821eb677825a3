# backend/marketplace/redis_client.py
"""
Shared Redis client.

Redis is optional: without REDIS_URL slot locks fall back to in-process
mutexes and booking events are not published.
"""

from redis import Redis

from .config import settings

redis_client: Redis | None = (
    Redis.from_url(settings.redis_url, decode_responses=True, socket_timeout=2.0)
    if settings.redis_url
    else None
)
