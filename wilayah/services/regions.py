from __future__ import annotations

from typing import Any, TYPE_CHECKING

import httpx
from pydantic import TypeAdapter, ValidationError

from wilayah.core.logging import get_logger
from wilayah.domain.hierarchy import Level
from wilayah.schemas.regions import Region
from wilayah.services.errors import MalformedResponse, TransportError

if TYPE_CHECKING:  # pragma: no cover - typing helpers only
    from wilayah.core.config import Settings


_logger = get_logger(__name__)
_REGION_LIST = TypeAdapter(list[Region])


class RegionDataSource:
    """Read-only client for the administrative region hierarchy service."""

    def __init__(
        self,
        base_url: str,
        *,
        suffix: str = ".json",
        timeout: float = 10.0,
        user_agent: str = "wilayah-kodepos",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._suffix = suffix
        self._timeout = timeout
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RegionDataSource":
        return cls(
            settings.region_api_base_url,
            suffix=settings.region_api_suffix,
            timeout=settings.http_timeout,
            user_agent=settings.http_user_agent,
        )

    def url_for(self, level: Level, parent_id: str | None = None) -> str:
        if level.parent is None:
            return f"{self._base_url}/{level.endpoint}{self._suffix}"
        if not parent_id:
            raise ValueError(f"{level.slug} regions require a parent id")
        return f"{self._base_url}/{level.endpoint}/{parent_id}{self._suffix}"

    async def fetch(self, level: Level, parent_id: str | None = None) -> list[Region]:
        url = self.url_for(level, parent_id)
        _logger.debug("Region request", level=level.slug, parent_id=parent_id, url=url)

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to fetch {level.slug} regions: {exc}") from exc

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise MalformedResponse(
                f"Region service returned invalid JSON for {level.slug}"
            ) from exc

        try:
            return _REGION_LIST.validate_python(payload)
        except ValidationError as exc:
            raise MalformedResponse(
                f"Unexpected {level.slug} payload: {exc.error_count()} invalid fields"
            ) from exc
