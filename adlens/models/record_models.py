"""ADLENS — Campaign Record Models.

One CampaignRecord is one (date, campaign) observation. The required core
comes from the tabular sources; enrichment fields stay None until the Meta
sync fills them.
"""

import re
import uuid
from typing import Optional, List

from pydantic import BaseModel, Field

_WHITESPACE = re.compile(r"\s+")


def new_record_id(prefix: str) -> str:
    """Opaque id, unique within a load but not across re-imports."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def merge_key(date: str, campaign_name: str) -> tuple[str, str]:
    """(date, campaign) join key, blind to case and whitespace."""
    name = _WHITESPACE.sub(" ", campaign_name.strip()).casefold()
    return date, name


class CampaignRecord(BaseModel):
    """Canonical per-day, per-campaign record."""

    id: str = Field(default_factory=lambda: new_record_id("rec"))
    date: str = Field(description="YYYY-MM-DD")
    campaign_name: str

    # Store-side metrics
    spent: float = 0.0
    cpc: float = 0.0
    roas: float = 0.0
    cvr: float = Field(default=0.0, description="Fraction, 0.05 for 5%")
    cpa: float = 0.0

    # Back-computed from spent and the ratios above
    clicks: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0

    # Meta insights enrichment
    impressions: Optional[float] = None
    reach: Optional[float] = None
    cpm: Optional[float] = None
    ctr: Optional[float] = None
    link_clicks: Optional[float] = None
    frequency: Optional[float] = None
    purchases: Optional[float] = None
    meta_cpc: Optional[float] = None
    meta_cpa: Optional[float] = None
    meta_cvr: Optional[float] = None

    @property
    def key(self) -> tuple[str, str]:
        return merge_key(self.date, self.campaign_name)


class AggregateRow(BaseModel):
    """A group of records summed, with every ratio recomputed from sums."""

    key: str = Field(description="Campaign name or date the group is keyed by")
    date: str = ""
    campaign_name: str = ""
    record_count: int = 0

    spent: float = 0.0
    revenue: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    impressions: float = 0.0
    reach: float = 0.0
    link_clicks: float = 0.0
    purchases: float = 0.0

    roas: float = 0.0
    cpc: float = 0.0
    cvr: float = 0.0
    cpa: float = 0.0
    cpm: float = 0.0
    ctr: float = 0.0
    frequency: float = 0.0


class DashboardSummary(BaseModel):
    """Headline totals for the filtered working set."""

    record_count: int = 0
    total_spent: float = 0.0
    total_revenue: float = 0.0
    total_clicks: float = 0.0
    total_conversions: float = 0.0
    total_reach: float = 0.0
    total_impressions: float = 0.0
    avg_roas: float = 0.0
    avg_cpc: float = 0.0
    avg_cpa: float = 0.0
    avg_cvr: float = 0.0
    avg_cpm: float = 0.0
    avg_ctr: float = 0.0
    avg_frequency: float = 0.0


class WorkingSetInfo(BaseModel):
    """Shape of the current working set."""

    record_count: int = 0
    campaign_count: int = 0
    date_start: str = ""
    date_end: str = ""
    # Initial dashboard window, ending at the latest date
    window_start: str = ""
    window_end: str = ""
    campaigns: List[str] = []
