"""ADLENS — Record Filters & Date Windows."""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from pydantic import BaseModel

from adlens.models.record_models import CampaignRecord

PRESETS = ("7d", "14d", "month", "quarter")


class RecordFilter(BaseModel):
    """Dashboard filter state. Empty fields filter nothing."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    search: Optional[str] = None
    campaign_types: List[str] = []
    """Every token must appear in the campaign name (case-sensitive)."""
    selected_dates: List[str] = []
    selected_campaign: Optional[str] = None

    def without_selection(self) -> "RecordFilter":
        """Drop chart-click selections; time series ignore them."""
        return self.model_copy(update={"selected_dates": [], "selected_campaign": None})


def apply_filter(
    records: Sequence[CampaignRecord], f: RecordFilter
) -> List[CampaignRecord]:
    """Return the records passing every active filter, order preserved."""
    result = list(records)

    if f.start_date:
        result = [r for r in result if r.date >= f.start_date]
    if f.end_date:
        result = [r for r in result if r.date <= f.end_date]

    if f.search:
        term = f.search.lower()
        result = [r for r in result if term in r.campaign_name.lower()]

    if f.campaign_types:
        result = [
            r for r in result if all(t in r.campaign_name for t in f.campaign_types)
        ]

    if f.selected_dates:
        selected = set(f.selected_dates)
        result = [r for r in result if r.date in selected]
    if f.selected_campaign:
        result = [r for r in result if r.campaign_name == f.selected_campaign]

    return result


def date_span(records: Sequence[CampaignRecord]) -> tuple[str, str] | None:
    """(earliest, latest) date in the set, or None when empty."""
    dates = [r.date for r in records if r.date]
    if not dates:
        return None
    return min(dates), max(dates)


def _shift(day: str, days: int) -> str:
    return (datetime.strptime(day, "%Y-%m-%d") - timedelta(days=days)).strftime(
        "%Y-%m-%d"
    )


def resolve_preset(
    records: Sequence[CampaignRecord], preset: str
) -> tuple[str, str] | None:
    """Resolve a preset window relative to the latest date in the set.

    "7d" and "14d" include the latest day, "month" starts on the first of
    the latest day's month, "quarter" reaches back 90 days.
    """
    span = date_span(records)
    if span is None or preset not in PRESETS:
        return None
    latest = span[1]

    if preset == "7d":
        start = _shift(latest, 6)
    elif preset == "14d":
        start = _shift(latest, 13)
    elif preset == "month":
        start = latest[:8] + "01"
    else:
        start = _shift(latest, 90)
    return start, latest


def default_window(
    records: Sequence[CampaignRecord], days: int = 7
) -> tuple[str, str] | None:
    """The last `days` days ending at the latest date in the set."""
    span = date_span(records)
    if span is None:
        return None
    return _shift(span[1], days - 1), span[1]
