from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from wilayah.domain.hierarchy import LevelName
from wilayah.schemas.regions import PostalCodeCandidate, Region


FetchStatus = Literal["idle", "loading", "ready", "failed"]
LookupStatus = Literal["idle", "loading", "found", "ambiguous", "not_found", "failed"]


class SelectionSnapshot(BaseModel):
    province: str | None = None
    city: str | None = None
    district: str | None = None
    village: str | None = None


class LevelSnapshot(BaseModel):
    level: LevelName
    status: FetchStatus
    parent_id: str | None = None
    regions: list[Region] = Field(default_factory=list)
    error: str | None = None


class PostalSnapshot(BaseModel):
    status: LookupStatus
    candidates: list[PostalCodeCandidate] = Field(default_factory=list)
    selected: PostalCodeCandidate | None = None
    query: str | None = None
    tier: Literal["exact", "partial"] | None = None
    message: str | None = None


class SessionSnapshot(BaseModel):
    session_id: UUID
    selection: SelectionSnapshot
    levels: list[LevelSnapshot]
    postal: PostalSnapshot


class SelectionRequest(BaseModel):
    level: LevelName
    region_id: str | None = None

    @field_validator("region_id", mode="before")
    def _normalize_region_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None


class PostalChoiceRequest(BaseModel):
    code: int
