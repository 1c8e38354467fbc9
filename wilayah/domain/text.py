from __future__ import annotations

import re


_WHITESPACE_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")


def normalize(value: str | None) -> str:
    """
    Canonicalize a place name for comparison.

    Lowercases, removes whitespace and drops every character outside
    ``[a-z0-9]``, so ``"Kebon Jeruk"``, ``"KEBON-JERUK"`` and ``"kebonjeruk"``
    all compare equal. ``None`` normalizes to an empty string.
    """
    if not value:
        return ""
    lowered = str(value).lower()
    compact = _WHITESPACE_RE.sub("", lowered)
    return _NON_ALNUM_RE.sub("", compact)


def first_token(value: str | None) -> str:
    if not value:
        return ""
    parts = value.split()
    return parts[0] if parts else ""


def contains_normalized(haystack: str | None, needle: str | None) -> bool:
    return normalize(needle) in normalize(haystack)
