from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
from cachetools import TTLCache
from pydantic import ValidationError

from wilayah.core.logging import get_logger
from wilayah.schemas.regions import PostalCodeCandidate, PostalSearchResponse
from wilayah.services.errors import MalformedResponse, TransportError

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from wilayah.core.config import Settings


_logger = get_logger(__name__)


class PostalSearchSource:
    """Free-text client for the postal code search service.

    Successful answers are cached per query; failures are never cached.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        user_agent: str = "wilayah-kodepos",
        cache_size: int = 512,
        cache_ttl: float = 60 * 60 * 24,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._transport = transport
        self._cache: TTLCache[str, list[PostalCodeCandidate]] = TTLCache(
            maxsize=cache_size, ttl=cache_ttl
        )
        self._cache_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: "Settings") -> "PostalSearchSource":
        return cls(
            settings.postal_api_base_url,
            timeout=settings.http_timeout,
            user_agent=settings.http_user_agent,
            cache_size=settings.postal_cache_size,
            cache_ttl=settings.postal_cache_ttl,
        )

    async def search(self, query: str) -> list[PostalCodeCandidate]:
        async with self._cache_lock:
            cached = self._cache.get(query)
        if cached is not None:
            _logger.debug("Postal search cache hit", query=query)
            return cached

        candidates = await self._fetch(query)

        async with self._cache_lock:
            self._cache[query] = candidates
        return candidates

    async def _fetch(self, query: str) -> list[PostalCodeCandidate]:
        url = f"{self._base_url}/search"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.get(url, params={"q": query})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Postal search failed: {exc}") from exc

        try:
            envelope = PostalSearchResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise MalformedResponse(
                f"Unexpected postal search payload: {exc.error_count()} invalid fields"
            ) from exc

        if not envelope.ok:
            raise MalformedResponse(
                f"Postal search returned code {envelope.code!r}"
                f" (status {envelope.status_code})"
            )

        _logger.debug("Postal search completed", query=query, results=len(envelope.data))
        return envelope.data
