from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from wilayah.api.v1.sessions import get_service
from wilayah.domain.hierarchy import Level, LevelName
from wilayah.schemas.regions import Region
from wilayah.services.errors import DataSourceError
from wilayah.services.session import SessionService


router = APIRouter()


@router.get("/{level}", response_model=list[Region])
async def list_regions(
    level: LevelName,
    parent_id: str | None = None,
    service: SessionService = Depends(get_service),
) -> list[Region]:
    resolved = Level.from_slug(level)
    if resolved.parent is not None and not parent_id:
        raise HTTPException(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            f"parent_id is required for {level} regions",
        )

    try:
        return await service.fetcher(resolved, parent_id or None)
    except DataSourceError as exc:
        raise HTTPException(status.HTTP_502_BAD_GATEWAY, str(exc)) from exc
