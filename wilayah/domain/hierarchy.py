from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Literal


LevelName = Literal["province", "city", "district", "village"]


class SelectionError(ValueError):
    """Raised when a level is selected while its parent level is unset."""


class Level(IntEnum):
    PROVINCE = 0
    CITY = 1
    DISTRICT = 2
    VILLAGE = 3

    @property
    def slug(self) -> LevelName:
        return self.name.lower()  # type: ignore[return-value]

    @property
    def endpoint(self) -> str:
        return _ENDPOINTS[self]

    @property
    def parent(self) -> "Level | None":
        if self is Level.PROVINCE:
            return None
        return Level(self - 1)

    def descendants(self) -> list["Level"]:
        return [level for level in Level if level > self]

    @classmethod
    def from_slug(cls, slug: str) -> "Level":
        try:
            return cls[slug.strip().upper()]
        except KeyError as exc:
            raise ValueError(f"Unknown level '{slug}'") from exc


_ENDPOINTS = {
    Level.PROVINCE: "provinces",
    Level.CITY: "regencies",
    Level.DISTRICT: "districts",
    Level.VILLAGE: "villages",
}


@dataclass(frozen=True, slots=True)
class HierarchySelection:
    """Selected region ids ordered from province down to village.

    ``select`` is the only transition. It clears every deeper level in the
    same step, so a child selection never outlives a change of its parent.
    """

    province: str | None = None
    city: str | None = None
    district: str | None = None
    village: str | None = None

    def get(self, level: Level) -> str | None:
        return self.as_tuple()[level]

    def as_tuple(self) -> tuple[str | None, str | None, str | None, str | None]:
        return (self.province, self.city, self.district, self.village)

    def parent_key(self, level: Level) -> str | None:
        parent = level.parent
        if parent is None:
            return None
        return self.get(parent)

    def is_fetch_eligible(self, level: Level) -> bool:
        if level.parent is None:
            return True
        return bool(self.parent_key(level))

    def select(self, level: Level, region_id: str | None) -> "HierarchySelection":
        value = region_id or None
        if value is not None and not self.is_fetch_eligible(level):
            raise SelectionError(
                f"Cannot select {level.slug} before {level.parent.slug}"  # type: ignore[union-attr]
            )
        ids = list(self.as_tuple())
        ids[level] = value
        for child in level.descendants():
            ids[child] = None
        return HierarchySelection(*ids)


@dataclass(frozen=True, slots=True)
class ResolvedAddressNames:
    province: str
    city: str
    district: str
    village: str
