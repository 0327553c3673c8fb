"""RedisNotificationPublisher — hands events to the external push service.

Each event is LPUSHed as JSON onto a Redis list; the push service BRPOPs it.
"""

import json

from config.settings import settings
from src.fm_common.redis_client import get_redis
from src.fm_notify.domain.events import NotificationEvent


class RedisNotificationPublisher:
    def __init__(self, key: str | None = None) -> None:
        self._key = key or settings.NOTIFICATION_REDIS_KEY

    async def publish(self, event: NotificationEvent) -> None:
        redis = await get_redis()
        await redis.lpush(self._key, json.dumps(event.to_payload(), default=str))
