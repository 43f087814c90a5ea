"""ADLENS — Aggregation Engine.

Regroups records by campaign (table view) or by date (time series).
Base quantities are summed first and every ratio is recomputed from the
sums. Averaging per-row ratios would be wrong whenever spend differs
between rows: days at {spent 100, roas 0.5} and {spent 300, roas 1.0}
aggregate to roas 0.875, not 0.75.
"""

from functools import cmp_to_key
from typing import Any, Callable, Dict, Iterable, List, Sequence

from adlens.models.record_models import AggregateRow, CampaignRecord, DashboardSummary
from adlens.core.logging import get_logger

logger = get_logger("analyzer.aggregation")

SUMMED_FIELDS = (
    "spent",
    "revenue",
    "clicks",
    "conversions",
    "impressions",
    "reach",
    "link_clicks",
    "purchases",
)


def _div(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def recompute_ratios(totals: Dict[str, float]) -> Dict[str, float]:
    """Derive every ratio metric from summed base quantities."""
    spent = totals["spent"]
    clicks = totals["clicks"]
    conversions = totals["conversions"]
    impressions = totals["impressions"]
    return {
        "roas": _div(totals["revenue"], spent),
        "cpc": _div(spent, clicks),
        "cvr": _div(conversions, clicks),
        "cpa": _div(spent, conversions),
        "cpm": _div(spent, impressions / 1000),
        "ctr": _div(totals["link_clicks"], impressions),
        "frequency": _div(impressions, totals["reach"]),
    }


def sum_records(records: Iterable[CampaignRecord]) -> tuple[Dict[str, float], int]:
    """Sum the base quantities of a record group; missing values count as 0."""
    totals = {f: 0.0 for f in SUMMED_FIELDS}
    count = 0
    for record in records:
        count += 1
        for f in SUMMED_FIELDS:
            totals[f] += getattr(record, f) or 0.0
    return totals, count


def _aggregate(
    records: Iterable[CampaignRecord],
    key_of: Callable[[CampaignRecord], str],
) -> Dict[str, AggregateRow]:
    groups: Dict[str, List[CampaignRecord]] = {}
    for record in records:
        groups.setdefault(key_of(record), []).append(record)

    rows: Dict[str, AggregateRow] = {}
    for key, members in groups.items():
        totals, count = sum_records(members)
        rows[key] = AggregateRow(
            key=key,
            record_count=count,
            **totals,
            **recompute_ratios(totals),
        )
    return rows


def aggregate_by_campaign(records: Iterable[CampaignRecord]) -> List[AggregateRow]:
    """One row per campaign name, in first-seen order."""
    rows = _aggregate(records, lambda r: r.campaign_name)
    for key, row in rows.items():
        row.campaign_name = key
    logger.debug(f"Aggregated {len(rows)} campaigns")
    return list(rows.values())


def aggregate_by_date(records: Iterable[CampaignRecord]) -> List[AggregateRow]:
    """One row per date, ascending."""
    rows = _aggregate(records, lambda r: r.date)
    for key, row in rows.items():
        row.date = key
    return [rows[k] for k in sorted(rows)]


def summarize(records: Sequence[CampaignRecord]) -> DashboardSummary:
    """Headline totals with weighted averages for the filtered set."""
    totals, count = sum_records(records)
    ratios = recompute_ratios(totals)
    return DashboardSummary(
        record_count=count,
        total_spent=totals["spent"],
        total_revenue=totals["revenue"],
        total_clicks=totals["clicks"],
        total_conversions=totals["conversions"],
        total_reach=totals["reach"],
        total_impressions=totals["impressions"],
        avg_roas=ratios["roas"],
        avg_cpc=ratios["cpc"],
        avg_cpa=ratios["cpa"],
        avg_cvr=ratios["cvr"],
        avg_cpm=ratios["cpm"],
        avg_ctr=ratios["ctr"],
        avg_frequency=ratios["frequency"],
    )


# ── Sorting ──


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compare_values(a: Any, b: Any) -> int:
    """Strings compare case-insensitively, numbers numerically, else equal."""
    if isinstance(a, str) and isinstance(b, str):
        left, right = a.casefold(), b.casefold()
    elif _is_number(a) and _is_number(b):
        left, right = a, b
    else:
        return 0
    return (left > right) - (left < right)


def sort_rows(rows: Sequence[Any], field: str, order: str = "desc") -> List[Any]:
    """Stable sort of records or aggregate rows by one field.

    Unknown fields and type-mismatched pairs compare equal, so they keep
    their incoming order.
    """
    sign = -1 if order == "desc" else 1

    def _cmp(x: Any, y: Any) -> int:
        return sign * compare_values(getattr(x, field, None), getattr(y, field, None))

    return sorted(rows, key=cmp_to_key(_cmp))
