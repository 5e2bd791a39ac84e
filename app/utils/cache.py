import json
from typing import Optional
from redis.asyncio import Redis

async def cache_get(redis: Redis, key: str):
    if val := await redis.get(key):
        return json.loads(val)
    return None

async def cache_set(redis: Redis, key: str, value, ex: Optional[int] = None):
    await redis.set(key, json.dumps(value, ensure_ascii=False), ex=ex)

async def cache_delete(redis: Redis, key: str):
    await redis.delete(key)
