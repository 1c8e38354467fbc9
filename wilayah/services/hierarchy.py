from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from cachetools import LRUCache

from wilayah.core.logging import get_logger
from wilayah.domain.hierarchy import (
    HierarchySelection,
    Level,
    ResolvedAddressNames,
)
from wilayah.schemas.regions import Region
from wilayah.schemas.sessions import FetchStatus


RegionFetcher = Callable[[Level, str | None], Awaitable[list[Region]]]


_logger = get_logger(__name__)


@dataclass(slots=True)
class LevelState:
    """Fetch state of one level for one parent key."""

    level: Level
    parent_id: str | None = None
    status: FetchStatus = "idle"
    regions: list[Region] = field(default_factory=list)
    error: str | None = None
    task: asyncio.Task[None] | None = None

    def find(self, region_id: str | None) -> Region | None:
        if not region_id or self.status != "ready":
            return None
        return next((region for region in self.regions if region.id == region_id), None)


class HierarchyResolver:
    """Cascading province → city → district → village selection.

    Each level memoizes one :class:`LevelState` per parent key. Only the entry
    for the parent currently selected above a level is visible, so a list
    fetched for an earlier parent is never shown under a new one. A fetch
    writes only to the entry it was started for, and is dropped if that entry
    was evicted or replaced by a retry.
    """

    def __init__(self, fetcher: RegionFetcher, *, cache_size: int = 64) -> None:
        self._fetcher = fetcher
        self._selection = HierarchySelection()
        self._cache: dict[Level, LRUCache[str | None, LevelState]] = {
            level: LRUCache(maxsize=cache_size) for level in Level
        }

    @property
    def selection(self) -> HierarchySelection:
        return self._selection

    def state(self, level: Level) -> LevelState:
        if not self._selection.is_fetch_eligible(level):
            return LevelState(level)
        parent_id = self._selection.parent_key(level)
        state = self._cache[level].get(parent_id)
        if state is None:
            return LevelState(level, parent_id=parent_id)
        return state

    def states(self) -> list[LevelState]:
        return [self.state(level) for level in Level]

    def regions(self, level: Level) -> list[Region]:
        state = self.state(level)
        if state.status != "ready":
            return []
        return list(state.regions)

    def start(self) -> None:
        self._activate(Level.PROVINCE)

    def select_level(self, level: Level, region_id: str | None) -> HierarchySelection:
        previous = self._selection
        self._selection = previous.select(level, region_id)

        _logger.info(
            "Region selected",
            level=level.slug,
            region_id=self._selection.get(level),
            previous=previous.get(level),
        )

        for child in level.descendants():
            self._activate(child)
        return self._selection

    def refresh(self, level: Level) -> LevelState:
        """Re-issue the fetch for the level's current key, unless already loading."""

        state = self.state(level)
        if not self._selection.is_fetch_eligible(level):
            return state
        if state.status == "loading":
            return state
        return self._start_fetch(level, state.parent_id)

    async def settle(self) -> None:
        """Wait until no fetch for the current keys is in flight."""

        while True:
            pending = [
                state.task
                for state in self.states()
                if state.task is not None and not state.task.done()
            ]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def resolved_names(self) -> ResolvedAddressNames | None:
        names: list[str] = []
        for level in Level:
            region = self.state(level).find(self._selection.get(level))
            if region is None:
                return None
            names.append(region.name)
        return ResolvedAddressNames(*names)

    def _activate(self, level: Level) -> None:
        if not self._selection.is_fetch_eligible(level):
            return

        parent_id = self._selection.parent_key(level)
        state = self._cache[level].get(parent_id)
        if state is not None and state.status in ("loading", "ready"):
            _logger.debug(
                "Region fetch deduplicated",
                level=level.slug,
                parent_id=parent_id,
                status=state.status,
            )
            return

        self._start_fetch(level, parent_id)

    def _start_fetch(self, level: Level, parent_id: str | None) -> LevelState:
        state = LevelState(level, parent_id=parent_id, status="loading")
        self._cache[level][parent_id] = state
        state.task = asyncio.create_task(self._run_fetch(state))
        _logger.info("Region fetch started", level=level.slug, parent_id=parent_id)
        return state

    def _owns_entry(self, state: LevelState) -> bool:
        return self._cache[state.level].get(state.parent_id) is state

    async def _run_fetch(self, state: LevelState) -> None:
        try:
            regions = await self._fetcher(state.level, state.parent_id)
        except Exception as exc:  # pylint: disable=broad-except
            if not self._owns_entry(state):
                _logger.info(
                    "Discarding superseded region failure",
                    level=state.level.slug,
                    parent_id=state.parent_id,
                )
                return
            state.status = "failed"
            state.error = str(exc) or exc.__class__.__name__
            _logger.warning(
                "Region fetch failed",
                level=state.level.slug,
                parent_id=state.parent_id,
                error=state.error,
            )
            return

        if not self._owns_entry(state):
            _logger.info(
                "Discarding superseded region list",
                level=state.level.slug,
                parent_id=state.parent_id,
                results=len(regions),
            )
            return

        state.regions = list(regions)
        state.status = "ready"
        _logger.info(
            "Region fetch completed",
            level=state.level.slug,
            parent_id=state.parent_id,
            results=len(regions),
            current=state.parent_id == self._selection.parent_key(state.level),
        )
