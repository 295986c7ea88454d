import json
import redis.asyncio as aioredis
from config import get_settings
from services.events import FriendEvent

settings = get_settings()

_redis: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_TIMEOUT_SECONDS,
            socket_timeout=settings.REDIS_TIMEOUT_SECONDS,
        )
    return _redis


async def close_redis():
    global _redis
    if _redis:
        await _redis.close()
        _redis = None


async def publish_friend_event(event: FriendEvent) -> None:
    """Relay a friendship change to ``REDIS_EVENTS_CHANNEL`` for poll/push layers."""
    if not settings.REDIS_URL:
        return
    r = await get_redis()
    await r.publish(settings.REDIS_EVENTS_CHANNEL, json.dumps(event.to_dict()))
