import json
import logging
from redis.asyncio import Redis
from konsuldok.platform.ports.event_bus import EventBusPort
from konsuldok.core.config import settings

log = logging.getLogger("bus.redis")

class RedisEventBus(EventBusPort):
    """One Redis stream per topic, e.g. ``konsuldok:konsuldok.appointment``."""

    def __init__(self, url: str | None = None):
        url = url or settings.REDIS_URL
        if not url:
            raise RuntimeError("REDIS_URL not configured")
        self.redis = Redis.from_url(url, decode_responses=True)

    def stream_for(self, topic: str) -> str:
        return f"{settings.REDIS_STREAM_PREFIX}:{topic}"

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None:
        fields = {"key": key, "data": json.dumps(value, default=str)}
        for name, val in (headers or {}).items():
            fields[f"h_{name}"] = str(val)
        stream = self.stream_for(topic)
        entry_id = await self.redis.xadd(stream, fields, maxlen=settings.REDIS_STREAM_MAXLEN, approximate=True)
        log.debug(f"XADD {stream} {entry_id} key={key}")
