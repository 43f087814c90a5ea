"""ADLENS — Row Mapper.

Builds a CampaignRecord from one tabular row and its resolved columns.
Rows without a usable date or campaign name are dropped, never raised.
"""

from typing import Any, Dict, Optional, Sequence

from adlens.core.metric_registry import CORE_FIELDS, ENRICHMENT_FIELDS, ParseKind
from adlens.models.record_models import CampaignRecord, new_record_id
from adlens.parsing.headers import NOT_FOUND
from adlens.parsing.scalars import normalize_date, parse_number, parse_percentage

_PARSERS = {
    ParseKind.NUMBER: parse_number,
    ParseKind.PERCENTAGE: parse_percentage,
}


def _cell(row: Sequence[Any], idx: int) -> Any:
    if idx == NOT_FOUND or idx >= len(row):
        return None
    return row[idx]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def derive_counts(spent: float, cpc: float, cpa: float, roas: float) -> Dict[str, float]:
    """Back-compute clicks, conversions and revenue from spend and ratios."""
    return {
        "clicks": spent / cpc if cpc > 0 else 0.0,
        "conversions": spent / cpa if cpa > 0 else 0.0,
        "revenue": spent * roas,
    }


def map_row(
    row: Sequence[Any],
    columns: Dict[str, int],
    row_index: int = 0,
) -> Optional[CampaignRecord]:
    """Map one raw row to a record, or None when the row is unusable."""
    if not row:
        return None

    date_raw = _cell(row, columns.get("date", NOT_FOUND))
    name_raw = _cell(row, columns.get("campaign_name", NOT_FOUND))
    if _is_blank(date_raw) or _is_blank(name_raw):
        return None

    date = normalize_date(date_raw)
    campaign_name = str(name_raw).strip()
    if not date or not campaign_name:
        return None

    values: Dict[str, Any] = {}
    for name, field in CORE_FIELDS.items():
        if field.parse_kind not in _PARSERS:
            continue
        raw = _cell(row, columns.get(name, NOT_FOUND))
        values[name] = _PARSERS[field.parse_kind](raw) if raw is not None else 0.0

    # Enrichment columns only exist on rows previously saved after a sync;
    # a blank cell means "never synced", not zero.
    for name, field in ENRICHMENT_FIELDS.items():
        raw = _cell(row, columns.get(name, NOT_FOUND))
        if _is_blank(raw):
            continue
        values[name] = _PARSERS[field.parse_kind](raw)

    values.update(
        derive_counts(values["spent"], values["cpc"], values["cpa"], values["roas"])
    )

    return CampaignRecord(
        id=new_record_id(f"{date}-{row_index}"),
        date=date,
        campaign_name=campaign_name,
        **values,
    )
