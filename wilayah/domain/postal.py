from __future__ import annotations

from typing import Literal, Sequence

from wilayah.domain.hierarchy import ResolvedAddressNames
from wilayah.domain.text import contains_normalized, first_token, normalize
from wilayah.schemas.regions import PostalCodeCandidate


MatchTier = Literal["exact", "partial"]


def compose_search_queries(names: ResolvedAddressNames) -> list[str]:
    """
    Build the search queries to try, in order.

    The index matches a district plus a short village token more reliably than
    a full compound village name, so that goes first and the full village name
    is the fallback.
    """
    district = names.district.strip()
    village = names.village.strip()

    queries: list[str] = []
    token = first_token(village)
    primary = " ".join(part for part in (district, token) if part)
    if primary:
        queries.append(primary)
    if village:
        queries.append(village)

    return list(dict.fromkeys(queries))


def match_exact(
    candidates: Sequence[PostalCodeCandidate], names: ResolvedAddressNames
) -> list[PostalCodeCandidate]:
    province = normalize(names.province)
    city = normalize(names.city)
    district = normalize(names.district)
    village = normalize(names.village)

    return [
        candidate
        for candidate in candidates
        if normalize(candidate.village) == village
        and normalize(candidate.province) == province
        and normalize(candidate.regency) == city
        and normalize(candidate.district) == district
    ]


def match_partial(
    candidates: Sequence[PostalCodeCandidate], names: ResolvedAddressNames
) -> list[PostalCodeCandidate]:
    # Regency is left out: region names carry KOTA/KABUPATEN prefixes that the
    # postal index omits, so it rarely matches even loosely.
    return [
        candidate
        for candidate in candidates
        if contains_normalized(candidate.province, names.province)
        and contains_normalized(candidate.district, names.district)
        and contains_normalized(candidate.village, names.village)
    ]


def filter_candidates(
    candidates: Sequence[PostalCodeCandidate], names: ResolvedAddressNames
) -> tuple[list[PostalCodeCandidate], MatchTier | None]:
    """Return the exact matches if any, else the partial matches, with the tier used."""

    exact = match_exact(candidates, names)
    if exact:
        return exact, "exact"

    partial = match_partial(candidates, names)
    if partial:
        return partial, "partial"

    return [], None
