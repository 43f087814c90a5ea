"""ADLENS — Header Resolver.

Locates the column of each logical field in a header row. Candidates come
from the field registry; matcher strategies are tried in priority order.
"""

import re
from typing import Callable, Dict, Iterable, List, Sequence

from adlens.core.metric_registry import ALL_FIELDS

NOT_FOUND = -1

_ENGLISH_ONLY = re.compile(r"^[A-Za-z]+$")

Matcher = Callable[[str, str], bool]


def _exact(header: str, candidate: str) -> bool:
    return header == candidate


def _case_insensitive(header: str, candidate: str) -> bool:
    return header.lower() == candidate.lower()


def _contains(header: str, candidate: str) -> bool:
    return candidate.lower() in header.lower()


# Tried per candidate, in order, before any fuzzy match is considered
EXACT_MATCHERS: List[Matcher] = [_exact, _case_insensitive]


def clean_headers(raw_headers: Iterable) -> List[str]:
    """Stringify and trim a header row; empty cells become ""."""
    return ["" if h is None else str(h).strip() for h in raw_headers]


def find_column(headers: Sequence[str], candidates: Sequence[str]) -> int:
    """Return the index of the first header matching a candidate, or -1.

    Each candidate is tried exactly, then case-insensitively. Only if none
    match are English-only candidates tried as case-insensitive substrings,
    so "Spent (USD)" still resolves to the spent column.
    """
    for candidate in candidates:
        for matcher in EXACT_MATCHERS:
            for idx, header in enumerate(headers):
                if matcher(header, candidate):
                    return idx

    english = [c for c in candidates if _ENGLISH_ONLY.match(c)]
    for candidate in english:
        for idx, header in enumerate(headers):
            if header and _contains(header, candidate):
                return idx
    return NOT_FOUND


def resolve_columns(
    raw_headers: Iterable, field_names: Iterable[str] | None = None
) -> Dict[str, int]:
    """Map each field name to its column index (-1 when absent)."""
    headers = clean_headers(raw_headers)
    names = list(field_names) if field_names is not None else list(ALL_FIELDS)
    columns: Dict[str, int] = {}
    for name in names:
        candidates = ALL_FIELDS[name].candidates
        columns[name] = find_column(headers, candidates) if candidates else NOT_FOUND
    return columns
