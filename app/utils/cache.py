# app/utils/cache.py
"""
Best-effort Redis cache.

Search must never fail because the cache is down: if Redis is unreachable at
startup the cache runs in pass-through mode for the life of the process, and
any error on a live connection (Redis, socket or decoding) is logged and
treated as a miss / no-op.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

logger = logging.getLogger("employee_search.cache")

AI_QUERY_PREFIX = "aiQuery:"
DISTINCT_LOCATIONS_KEY = "distinct:locations"

AI_QUERY_TTL_SECONDS = 3600
LOCATIONS_TTL_SECONDS = 86400


def model_response_key(query: str) -> str:
    """Raw query text, un-normalized and case-sensitive, under the aiQuery namespace."""
    return f"{AI_QUERY_PREFIX}{query}"


class BestEffortCache:
    def __init__(self, client: Optional[Any] = None):
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None

    async def get(self, key: str) -> Optional[str]:
        if self._client is None:
            return None
        try:
            value = await self._client.get(key)
        except Exception as e:
            logger.warning("cache_get_failed", extra={"key": key[:120], "error": str(e)})
            return None
        if value is None:
            logger.debug("cache_miss", extra={"key": key[:120]})
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="replace")
        logger.debug("cache_hit", extra={"key": key[:120]})
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if self._client is None:
            return
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except Exception as e:
            logger.warning("cache_set_failed", extra={"key": key[:120], "error": str(e)})

    async def get_json(self, key: str) -> Optional[Any]:
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_value_not_json", extra={"key": key[:120]})
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.set(key, json.dumps(value), ttl_seconds)

    async def aclose(self) -> None:
        if self._client is None:
            return
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("cache_close_failed", extra={"error": str(e)})
        finally:
            self._client = None


async def connect_cache(url: Optional[str]) -> BestEffortCache:
    """
    Connect once at startup. No URL, or a failed ping, gives a pass-through cache.
    """
    if not url:
        logger.warning("cache_disabled", extra={"reason": "REDIS_URL not set"})
        return BestEffortCache(None)

    client = aioredis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("cache_connect_failed", extra={"error": str(e)})
        try:
            await client.aclose()
        except (RedisError, OSError):
            pass
        return BestEffortCache(None)

    logger.info("cache_connected")
    return BestEffortCache(client)
