"""
Event Deduplicator and view-count throttle.

Both keep a key -> last-seen timestamp map behind the TTLCache interface.
In a single process the in-memory cache is enough; with several API
instances set ``REDIS_URL`` so they share one store with server-side expiry.
"""

import threading
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.config import get_settings
from src.engines.policy.errors import InfrastructureError
from src.engines.policy.ports import AuditSink, TTLCache
from src.engines.policy.types import AuditEvent
from src.kernel.state import ensure_utc, utcnow
from src.logging_config import get_logger

logger = get_logger(__name__)


class InMemoryTTLCache:
    """Process-local cache; every operation holds one lock."""

    def __init__(self):
        self._entries: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    async def get(self, key: str) -> Optional[datetime]:
        with self._lock:
            return self._entries.get(key)

    async def set(self, key: str, at: datetime, ttl: timedelta) -> None:
        with self._lock:
            self._entries[key] = ensure_utc(at)

    async def claim(self, key: str, now: datetime, window: timedelta) -> bool:
        now = ensure_utc(now)
        with self._lock:
            last_seen = self._entries.get(key)
            if last_seen is not None and now - last_seen < window:
                return False
            self._entries[key] = now
            return True

    async def sweep(self, older_than: datetime) -> int:
        older_than = ensure_utc(older_than)
        with self._lock:
            stale = [key for key, seen in self._entries.items() if seen < older_than]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RedisTTLCache:
    """
    Shared cache backed by Redis.

    ``claim`` is a single ``SET NX PX`` so concurrent instances cannot both
    win the same key. Keys expire server-side, so sweeping is a no-op.
    """

    def __init__(self, redis: Redis, prefix: str):
        self.redis = redis
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    @staticmethod
    def _ttl_ms(ttl: timedelta) -> int:
        return max(1, int(ttl.total_seconds() * 1000))

    async def get(self, key: str) -> Optional[datetime]:
        try:
            value = await self.redis.get(self._key(key))
        except RedisError as exc:
            raise InfrastructureError(str(exc), operation="cache.get") from exc
        return datetime.fromisoformat(value) if value else None

    async def set(self, key: str, at: datetime, ttl: timedelta) -> None:
        try:
            await self.redis.set(self._key(key), ensure_utc(at).isoformat(), px=self._ttl_ms(ttl))
        except RedisError as exc:
            raise InfrastructureError(str(exc), operation="cache.set") from exc

    async def claim(self, key: str, now: datetime, window: timedelta) -> bool:
        try:
            won = await self.redis.set(
                self._key(key),
                ensure_utc(now).isoformat(),
                nx=True,
                px=self._ttl_ms(window),
            )
        except RedisError as exc:
            raise InfrastructureError(str(exc), operation="cache.claim") from exc
        return bool(won)

    async def sweep(self, older_than: datetime) -> int:
        return 0

    async def close(self) -> None:
        await self.redis.aclose()

    def __len__(self) -> int:
        return 0


def dedup_key(event: AuditEvent) -> str:
    """principal-action-method-url[-resource_id]"""
    parts = [
        str(event.principal_id) if event.principal_id else "anonymous",
        event.action,
        event.method or "",
        event.url or "",
    ]
    if event.resource_id:
        parts.append(str(event.resource_id))
    return "-".join(parts)


class EventDeduplicator:
    """Writes audit events through to the sink, dropping repeats inside the window."""

    def __init__(
        self,
        sink: AuditSink,
        cache: TTLCache,
        window: timedelta = timedelta(milliseconds=1000),
        sweep_threshold: int = 100,
    ):
        self.sink = sink
        self.cache = cache
        self.window = window
        self.sweep_threshold = sweep_threshold

    async def record(self, event: AuditEvent) -> bool:
        """Returns True when the event was written."""
        now = event.timestamp

        if len(self.cache) > self.sweep_threshold:
            removed = await self.cache.sweep(now - self.window)
            logger.debug("Swept audit dedup cache", extra={"removed": removed})

        key = dedup_key(event)
        if not await self.cache.claim(key, now, self.window):
            logger.debug("Duplicate audit event suppressed", extra={"dedup_key": key})
            return False

        await self.sink.write(event)
        return True


class ViewCountThrottle:
    """Allows one view-count increment per document per window."""

    STALE_AFTER = timedelta(seconds=60)

    def __init__(
        self,
        cache: TTLCache,
        window: timedelta = timedelta(seconds=5),
        sweep_threshold: int = 100,
    ):
        self.cache = cache
        self.window = window
        self.sweep_threshold = sweep_threshold

    async def should_count(self, artifact_id, now: Optional[datetime] = None) -> bool:
        now = ensure_utc(now) if now is not None else utcnow()
        if len(self.cache) > self.sweep_threshold:
            await self.cache.sweep(now - self.STALE_AFTER)
        return await self.cache.claim(str(artifact_id), now, self.window)


def _build_cache(prefix: str) -> TTLCache:
    settings = get_settings()
    if settings.redis_url:
        logger.info("Using Redis for %s cache", prefix)
        return RedisTTLCache(Redis.from_url(settings.redis_url, decode_responses=True), prefix)
    return InMemoryTTLCache()


@lru_cache
def get_audit_cache() -> TTLCache:
    """Process-wide audit dedup cache."""
    return _build_cache("audit-dedup")


@lru_cache
def get_view_cache() -> TTLCache:
    """Process-wide view throttle cache."""
    return _build_cache("view-throttle")


async def close_caches() -> None:
    """Release Redis connections held by the process-wide caches."""
    for cache in (get_audit_cache(), get_view_cache()):
        if isinstance(cache, RedisTTLCache):
            await cache.close()
