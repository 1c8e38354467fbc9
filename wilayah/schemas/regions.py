from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Region(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str

    @field_validator("id", mode="before")
    def _coerce_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value


class PostalCodeCandidate(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    code: int
    village: str
    district: str
    regency: str
    province: str
    latitude: float | None = None
    longitude: float | None = None
    elevation: float | None = None
    timezone: str | None = None


class PostalSearchResponse(BaseModel):
    """Envelope returned by the postal search service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    status_code: int | None = Field(default=None, alias="statusCode")
    code: str
    data: list[PostalCodeCandidate] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.code == "OK"
