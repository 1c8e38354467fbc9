from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable

from wilayah.core.logging import get_logger
from wilayah.domain.hierarchy import ResolvedAddressNames
from wilayah.domain.postal import MatchTier, compose_search_queries, filter_candidates
from wilayah.schemas.regions import PostalCodeCandidate
from wilayah.schemas.sessions import LookupStatus, PostalSnapshot
from wilayah.services.errors import DataSourceError


SearchCallable = Callable[[str], Awaitable[list[PostalCodeCandidate]]]


_logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class PostalLookup:
    status: LookupStatus
    candidates: list[PostalCodeCandidate] = field(default_factory=list)
    query: str | None = None
    tier: MatchTier | None = None
    message: str | None = None
    selected: PostalCodeCandidate | None = None

    def to_snapshot(self) -> PostalSnapshot:
        return PostalSnapshot(
            status=self.status,
            candidates=self.candidates,
            selected=self.selected,
            query=self.query,
            tier=self.tier,
            message=self.message,
        )


IDLE = PostalLookup("idle")


class CandidateNotFoundError(LookupError):
    """Raised when choosing a postal code that is not among the candidates."""


class PostalCodeResolver:
    """Disambiguates the postal code of a fully resolved village.

    ``lookup`` is stateless. ``request`` tracks the outcome for one village at
    a time and drops results that finish after the village has changed.
    """

    def __init__(self, search: SearchCallable) -> None:
        self._search = search
        self._village_id: str | None = None
        self._outcome: PostalLookup = IDLE
        self._task: asyncio.Task[None] | None = None

    @property
    def outcome(self) -> PostalLookup:
        return self._outcome

    @property
    def village_id(self) -> str | None:
        return self._village_id

    async def lookup(self, names: ResolvedAddressNames) -> PostalLookup:
        queries = compose_search_queries(names)
        last_error: DataSourceError | None = None

        for strategy, query in enumerate(queries, start=1):
            _logger.info("Postal search", strategy=strategy, query=query)
            try:
                candidates = await self._search(query)
            except DataSourceError as exc:
                _logger.warning(
                    "Postal search failed", strategy=strategy, query=query, error=str(exc)
                )
                last_error = exc
                continue

            if not candidates:
                _logger.info("Postal search empty", strategy=strategy, query=query)
                last_error = None
                continue

            matches, tier = filter_candidates(candidates, names)
            _logger.info(
                "Postal candidates filtered",
                strategy=strategy,
                query=query,
                received=len(candidates),
                matched=len(matches),
                tier=tier,
            )
            return _outcome_for(matches, query=query, tier=tier)

        last_query = queries[-1] if queries else None
        if last_error is not None:
            return PostalLookup("failed", query=last_query, message=str(last_error))
        return PostalLookup(
            "not_found", query=last_query, message="No postal code candidates"
        )

    def request(self, village_id: str, names: ResolvedAddressNames) -> PostalLookup:
        self._village_id = village_id
        self._outcome = PostalLookup("loading")
        self._task = asyncio.create_task(self._run(village_id, names))
        return self._outcome

    def fail(self, village_id: str, message: str) -> PostalLookup:
        self._village_id = village_id
        self._task = None
        self._outcome = PostalLookup("failed", message=message)
        return self._outcome

    def invalidate(self) -> None:
        if self._village_id is not None:
            _logger.debug("Postal lookup invalidated", village_id=self._village_id)
        self._village_id = None
        self._task = None
        self._outcome = IDLE

    def choose(self, code: int) -> PostalLookup:
        outcome = self._outcome
        selected = next(
            (candidate for candidate in outcome.candidates if candidate.code == code),
            None,
        )
        if selected is None:
            raise CandidateNotFoundError(f"Postal code {code} is not a candidate")
        self._outcome = replace(outcome, selected=selected)
        _logger.info("Postal code chosen", village_id=self._village_id, code=code)
        return self._outcome

    async def settle(self) -> None:
        task = self._task
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def _run(self, village_id: str, names: ResolvedAddressNames) -> None:
        try:
            outcome = await self.lookup(names)
        except Exception as exc:  # pylint: disable=broad-except
            _logger.error(
                "Postal lookup crashed",
                village_id=village_id,
                error=str(exc),
                exc_info=True,
            )
            outcome = PostalLookup("failed", message=str(exc))

        if asyncio.current_task() is not self._task:
            _logger.info("Discarding stale postal lookup", village_id=village_id)
            return
        self._outcome = outcome


def _outcome_for(
    matches: list[PostalCodeCandidate], *, query: str, tier: MatchTier | None
) -> PostalLookup:
    if not matches:
        return PostalLookup(
            "not_found", query=query, message="No candidate matches the address"
        )
    if len(matches) == 1:
        return PostalLookup(
            "found", candidates=matches, query=query, tier=tier, selected=matches[0]
        )
    return PostalLookup("ambiguous", candidates=matches, query=query, tier=tier)
