"""ADLENS — Meta Raw → CampaignRecord Transformer.

Converts raw campaign insight rows into partial CampaignRecords carrying
the Meta enrichment fields. Ratios are derived from the raw counts here,
not taken from Meta's own ratio fields.
"""

import math
from typing import Any, Dict, List

from adlens.models.record_models import CampaignRecord, new_record_id
from adlens.parsing.scalars import normalize_date
from adlens.core.logging import get_logger

logger = get_logger("meta.transformer")

LINK_CLICK = "link_click"
PURCHASE = "omni_purchase"


def _safe_float(value: Any) -> float:
    """Safely convert a value to float; non-finite values become 0."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def _safe_int(value: Any) -> int:
    return int(_safe_float(value))


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _extract_action_counts(row: Dict[str, Any]) -> Dict[str, int]:
    """Pull link-click and purchase counts out of the action list."""
    counts = {"link_clicks": 0, "purchases": 0}
    actions = row.get("actions") or []
    for action in actions:
        if not isinstance(action, dict):
            continue
        action_type = action.get("action_type", "")
        if action_type == LINK_CLICK:
            counts["link_clicks"] = _safe_int(action.get("value", 0))
        elif action_type == PURCHASE:
            counts["purchases"] = _safe_int(action.get("value", 0))
    return counts


def transform_insight_row(row: Dict[str, Any], index: int = 0) -> CampaignRecord | None:
    """Transform one insight row; rows without a date or campaign are dropped."""
    date = normalize_date(row.get("date_start", ""))
    campaign_name = str(row.get("campaign_name") or "").strip()
    if not date or not campaign_name:
        return None

    spend = _safe_float(row.get("spend", 0))
    impressions = _safe_int(row.get("impressions", 0))
    reach = _safe_int(row.get("reach", 0))
    counts = _extract_action_counts(row)
    link_clicks = counts["link_clicks"]
    purchases = counts["purchases"]

    cpc = _ratio(spend, link_clicks)
    cpa = _ratio(spend, purchases)
    cvr = _ratio(purchases, link_clicks)

    return CampaignRecord(
        id=new_record_id(f"fb-{date}-{row.get('campaign_id', '')}-{index}"),
        date=date,
        campaign_name=campaign_name,
        spent=spend,
        # Core ratios mirror the Meta-side ones so counts stay back-computable
        cpc=cpc,
        cpa=cpa,
        cvr=cvr,
        clicks=float(link_clicks),
        conversions=float(purchases),
        impressions=float(impressions),
        reach=float(reach),
        link_clicks=float(link_clicks),
        purchases=float(purchases),
        ctr=_ratio(link_clicks, impressions),
        cpm=_ratio(spend, impressions / 1000),
        frequency=_ratio(impressions, reach),
        meta_cpc=cpc,
        meta_cpa=cpa,
        meta_cvr=cvr,
    )


def transform_insights(raw_data: List[Dict[str, Any]]) -> List[CampaignRecord]:
    """Transform raw Meta insight rows into partial CampaignRecords."""
    records: List[CampaignRecord] = []
    for i, row in enumerate(raw_data):
        record = transform_insight_row(row, i)
        if record is not None:
            records.append(record)

    logger.info(
        f"Transformed {len(records)} of {len(raw_data)} insight rows",
        extra={"rows": len(records)},
    )
    return records
