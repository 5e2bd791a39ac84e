from __future__ import annotations
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol
import logging
import time

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from redis.asyncio import Redis

from app.core.config import Settings, get_settings
from app.domain.models.product import RecommendationItem, StreamStats
from app.utils.cache import cache_delete, cache_get, cache_set

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60
DEFAULT_KEY_PREFIX = "ai-recommendations"


class CacheEntry(BaseModel):
    recommendations: List[RecommendationItem]
    stats: StreamStats
    timestamp: float  # seconds since epoch
    user_id: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# ----- Storage backends ------------------------------------------------------

class KeyValueStore(Protocol):
    """Key -> JSON blob storage, no query capability."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryStore:
    """Process-local store; values are kept as JSON-compatible objects."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStore:
    """Redis-backed store. Redis expiry is set as well, entries still carry their own timestamp."""

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[Any]:
        return await cache_get(self.redis, key)

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        await cache_set(self.redis, key, value, ex=ttl)

    async def delete(self, key: str) -> None:
        await cache_delete(self.redis, key)


# ----- Cache -----------------------------------------------------------------

class RecommendationCache:
    """
    Time-boxed cache of a user's last complete recommendation stream.

    An entry is served only while `now - timestamp < ttl` and its `userId`
    matches the requesting user; anything else (expired, foreign, corrupt) is
    deleted on read. Writes are last-write-wins, no locking.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.ttl = ttl_seconds
        self.prefix = key_prefix
        self._clock = clock

    def key(self, user_id: str) -> str:
        return f"{self.prefix}:{user_id}"

    async def get(self, user_id: str) -> Optional[CacheEntry]:
        key = self.key(user_id)
        raw = await self.store.get(key)
        if raw is None:
            return None

        try:
            entry = CacheEntry.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Error reading cache for user_id={user_id}: {e}")
            await self.store.delete(key)
            return None

        is_expired = self._clock() - entry.timestamp >= self.ttl
        is_different_user = entry.user_id != user_id
        if is_expired or is_different_user:
            logger.debug(f"Discarding cache entry key={key} expired={is_expired} other_user={is_different_user}")
            await self.store.delete(key)
            return None
        return entry

    async def set(
        self,
        user_id: str,
        recommendations: Iterable[RecommendationItem],
        stats: StreamStats,
    ) -> CacheEntry:
        entry = CacheEntry(
            recommendations=list(recommendations),
            stats=stats,
            timestamp=self._clock(),
            user_id=user_id,
        )
        await self.store.set(self.key(user_id), entry.model_dump(mode="json", by_alias=True), ttl=self.ttl)
        logger.info(f"Cached {len(entry.recommendations)} recommendations for user_id={user_id}")
        return entry

    async def invalidate(self, user_id: str) -> None:
        await self.store.delete(self.key(user_id))


def recommendation_cache_from_settings(
    store: KeyValueStore,
    settings: Optional[Settings] = None,
    *,
    clock: Callable[[], float] = time.time,
) -> RecommendationCache:
    """Cache configured from `reco_cache_ttl` / `reco_cache_prefix`."""
    settings = settings or get_settings()
    return RecommendationCache(
        store,
        ttl_seconds=settings.reco_cache_ttl,
        key_prefix=settings.reco_cache_prefix,
        clock=clock,
    )
