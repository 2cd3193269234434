"""Lingua – Redis document cache.

Caches per-language documents and the supported-language list so repeated
editor loads skip the database. Every server-side write invalidates the
affected keys. A read failure is a cache miss; the caller falls back to the
store.
"""

import json
from typing import Any

import redis.asyncio as redis
import structlog

from app.core.redis_keys import document_key, languages_key, project_documents_pattern

logger = structlog.get_logger()


class DocumentCache:
    """Async Redis-backed cache for translation documents."""

    def __init__(self, redis_url: str = "redis://127.0.0.1:6379/0", ttl_seconds: int = 3600) -> None:
        self._redis_url = redis_url
        self._ttl = ttl_seconds
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        self._client = redis.from_url(
            self._redis_url,
            decode_responses=True,
            retry_on_timeout=True,
        )
        await self._client.ping()
        logger.info("cache.connected", url=self._redis_url)

    async def disconnect(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        logger.info("cache.disconnected")

    async def health_check(self) -> bool:
        if not self._client:
            return False
        try:
            return await self._client.ping()
        except (redis.ConnectionError, redis.TimeoutError):
            logger.error("cache.health_check_failed")
            return False

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def _get_json(self, key: str) -> Any:
        if not self._client:
            return None
        try:
            raw = await self._client.get(key)
        except redis.RedisError as e:
            logger.warning("cache.read_failed", key=key, error=str(e))
            return None
        if raw is None:
            logger.debug("cache.miss", key=key)
            return None
        return json.loads(raw)

    async def _set_json(self, key: str, value: Any) -> None:
        if not self._client:
            return
        await self._client.set(key, json.dumps(value, ensure_ascii=False), ex=self._ttl)

    async def get_document(self, project_id: str, language: str) -> Any:
        return await self._get_json(document_key(project_id, language))

    async def set_document(self, project_id: str, language: str, document: Any) -> None:
        await self._set_json(document_key(project_id, language), document)

    async def invalidate_document(self, project_id: str, language: str) -> None:
        if not self._client:
            return
        await self._client.delete(document_key(project_id, language))
        logger.debug("cache.invalidated", project_id=project_id, language=language)

    async def invalidate_project(self, project_id: str) -> int:
        """Drop every cached document of a project. Returns the number removed."""
        if not self._client:
            return 0
        keys = [key async for key in self._client.scan_iter(match=project_documents_pattern(project_id))]
        if keys:
            await self._client.delete(*keys)
        logger.debug("cache.project_invalidated", project_id=project_id, keys=len(keys))
        return len(keys)

    async def get_languages(self) -> list[str] | None:
        return await self._get_json(languages_key())

    async def set_languages(self, languages: list[str]) -> None:
        await self._set_json(languages_key(), languages)
