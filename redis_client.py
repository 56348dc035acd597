import json
import logging
from typing import Optional

import redis

logger = logging.getLogger(__name__)

BOOKS_KEY_PREFIX = "books:list"


def build_redis_client(redis_url: Optional[str]) -> Optional[redis.Redis]:
    if not redis_url:
        return None
    return redis.from_url(redis_url, decode_responses=True)


def books_cache_key(q: str | None, category: str | None) -> str:
    return ":".join([BOOKS_KEY_PREFIX, q or "", category or ""])


def get_cached_books(redis_client: Optional[redis.Redis], key: str) -> Optional[list]:
    if redis_client is None:
        return None
    try:
        cached = redis_client.get(key)
    except redis.RedisError as exc:
        logger.warning("Book cache read failed: %s", exc)
        return None
    return json.loads(cached) if cached else None


def cache_books(redis_client: Optional[redis.Redis], key: str, payload: list, ttl: int) -> None:
    if redis_client is None:
        return
    try:
        redis_client.setex(key, ttl, json.dumps(payload))
    except redis.RedisError as exc:
        logger.warning("Book cache write failed: %s", exc)


def invalidate_books_cache(redis_client: Optional[redis.Redis]) -> None:
    if redis_client is None:
        return
    try:
        keys = list(redis_client.scan_iter(match=f"{BOOKS_KEY_PREFIX}:*", count=200))
        if keys:
            redis_client.delete(*keys)
    except redis.RedisError as exc:
        logger.warning("Book cache invalidation failed: %s", exc)
