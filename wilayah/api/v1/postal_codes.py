from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from wilayah.api.v1.sessions import get_service
from wilayah.domain.hierarchy import ResolvedAddressNames
from wilayah.schemas.sessions import PostalSnapshot
from wilayah.services.postal_code import PostalCodeResolver
from wilayah.services.session import SessionService


router = APIRouter()


@router.get("", response_model=PostalSnapshot)
async def lookup_postal_code(
    province: str = Query(..., min_length=1),
    city: str = Query(..., min_length=1),
    district: str = Query(..., min_length=1),
    village: str = Query(..., min_length=1),
    service: SessionService = Depends(get_service),
) -> PostalSnapshot:
    resolver = PostalCodeResolver(service.search)
    outcome = await resolver.lookup(
        ResolvedAddressNames(
            province=province, city=city, district=district, village=village
        )
    )
    if outcome.status == "failed":
        raise HTTPException(
            status.HTTP_502_BAD_GATEWAY, outcome.message or "Postal search failed"
        )

    return outcome.to_snapshot()
