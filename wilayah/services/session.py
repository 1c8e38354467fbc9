from __future__ import annotations

import asyncio
import time
from typing import Callable
from uuid import UUID, uuid4

from cachetools import TTLCache

from wilayah.core.config import Settings
from wilayah.core.logging import get_logger
from wilayah.domain.hierarchy import Level
from wilayah.schemas.sessions import (
    LevelSnapshot,
    SelectionSnapshot,
    SessionSnapshot,
)
from wilayah.services.hierarchy import HierarchyResolver, RegionFetcher
from wilayah.services.postal_code import PostalCodeResolver, SearchCallable
from wilayah.services.postal_search import PostalSearchSource
from wilayah.services.regions import RegionDataSource


_logger = get_logger(__name__)


class AddressSession:
    """One user's cascading address selection and its postal code outcome."""

    def __init__(
        self,
        fetcher: RegionFetcher,
        search: SearchCallable,
        *,
        session_id: UUID | None = None,
        region_cache_size: int = 64,
    ) -> None:
        self.session_id = session_id or uuid4()
        self.hierarchy = HierarchyResolver(fetcher, cache_size=region_cache_size)
        self.postal = PostalCodeResolver(search)

    def start(self) -> None:
        self.hierarchy.start()

    def select(self, level: Level, region_id: str | None) -> None:
        previous_village = self.hierarchy.selection.village
        selection = self.hierarchy.select_level(level, region_id)

        unchanged = selection.village == previous_village
        if unchanged and self.postal.outcome.status != "failed":
            return

        self.postal.invalidate()
        if selection.village is None:
            return

        names = self.hierarchy.resolved_names()
        if names is None:
            _logger.warning(
                "Postal lookup skipped",
                session_id=str(self.session_id),
                village_id=selection.village,
                reason="unresolved_names",
            )
            self.postal.fail(selection.village, "Address names are not available")
            return

        self.postal.request(selection.village, names)

    def refresh(self, level: Level) -> None:
        self.hierarchy.refresh(level)

    def choose_postal_code(self, code: int) -> None:
        self.postal.choose(code)

    async def settle(self) -> None:
        await self.hierarchy.settle()
        await self.postal.settle()

    def snapshot(self) -> SessionSnapshot:
        selection = self.hierarchy.selection
        return SessionSnapshot(
            session_id=self.session_id,
            selection=SelectionSnapshot(
                province=selection.province,
                city=selection.city,
                district=selection.district,
                village=selection.village,
            ),
            levels=[
                LevelSnapshot(
                    level=state.level.slug,
                    status=state.status,
                    parent_id=state.parent_id,
                    regions=state.regions if state.status == "ready" else [],
                    error=state.error,
                )
                for state in self.hierarchy.states()
            ],
            postal=self.postal.outcome.to_snapshot(),
        )


class SessionService:
    """In-memory registry of live address sessions.

    Sessions expire after ``ttl`` seconds without access, and the oldest are
    evicted once ``maxsize`` sessions are live.
    """

    def __init__(
        self,
        fetcher: RegionFetcher,
        search: SearchCallable,
        *,
        maxsize: int = 1024,
        ttl: float = 60 * 60,
        region_cache_size: int = 64,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._search = search
        self._region_cache_size = region_cache_size
        self._sessions: TTLCache[UUID, AddressSession] = TTLCache(
            maxsize=maxsize, ttl=ttl, timer=timer
        )
        self._lock = asyncio.Lock()

    @property
    def search(self) -> SearchCallable:
        return self._search

    @property
    def fetcher(self) -> RegionFetcher:
        return self._fetcher

    async def create_session(self) -> AddressSession:
        session = AddressSession(
            self._fetcher, self._search, region_cache_size=self._region_cache_size
        )
        async with self._lock:
            self._sessions[session.session_id] = session
        session.start()
        _logger.info("Session created", session_id=str(session.session_id))
        return session

    async def get_session(self, session_id: UUID) -> AddressSession | None:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is not None:
                # Reinsert to restart the expiry clock.
                self._sessions[session_id] = session
        return session

    async def delete_session(self, session_id: UUID) -> bool:
        async with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            _logger.info("Session deleted", session_id=str(session_id))
        return removed is not None


_session_service: SessionService | None = None


def get_session_service(settings: Settings) -> SessionService:
    global _session_service
    if _session_service is None:
        regions = RegionDataSource.from_settings(settings)
        postal = PostalSearchSource.from_settings(settings)
        _session_service = SessionService(
            regions.fetch,
            postal.search,
            maxsize=settings.session_cache_size,
            ttl=settings.session_ttl,
            region_cache_size=settings.region_cache_size,
        )
    return _session_service
