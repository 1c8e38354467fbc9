from __future__ import annotations

from fastapi import APIRouter

from wilayah.api.v1 import postal_codes, regions, sessions

router = APIRouter()
router.include_router(regions.router, prefix="/v1/regions", tags=["regions"])
router.include_router(
    postal_codes.router, prefix="/v1/postal-codes", tags=["postal-codes"]
)
router.include_router(sessions.router, prefix="/v1/sessions", tags=["sessions"])
