"""ADLENS — Merge Engine.

Combines record sets keyed by (date, campaign name) under two policies:

- import merge: the working set wins; a tabular import only adds keys that
  are not already present, so a re-upload never wipes synced Meta fields.
- enrichment merge: Meta rows only overlay enrichment fields onto keys the
  working set already has; unmatched Meta rows are dropped.

Both return a new list sorted by date. Inputs are never mutated.
"""

from typing import Dict, Iterable, List

from adlens.core.metric_registry import ENRICHMENT_FIELDS
from adlens.models.record_models import CampaignRecord
from adlens.core.logging import get_logger

logger = get_logger("analyzer.merge")

ENRICHMENT_FIELD_NAMES: tuple[str, ...] = tuple(ENRICHMENT_FIELDS)

# Summed when several Meta rows share a key; ratios are recomputed after
_SUMMABLE = ("spent", "impressions", "reach", "link_clicks", "purchases")


def sort_by_date(records: Iterable[CampaignRecord]) -> List[CampaignRecord]:
    """Stable ascending sort on the ISO date string."""
    return sorted(records, key=lambda r: r.date)


def enrichment_values(record: CampaignRecord) -> Dict[str, float | None]:
    """The enrichment fields of a record, field by field."""
    return {name: getattr(record, name) for name in ENRICHMENT_FIELD_NAMES}


def merge_import(
    existing: Iterable[CampaignRecord],
    incoming: Iterable[CampaignRecord],
) -> List[CampaignRecord]:
    """Add incoming records whose key is not yet in the working set."""
    merged: Dict[tuple[str, str], CampaignRecord] = {}
    for record in existing:
        merged.setdefault(record.key, record)

    added = 0
    kept = 0
    for record in incoming:
        if record.key in merged:
            kept += 1
            continue
        merged[record.key] = record
        added += 1

    logger.info(f"Import merge: {added} added, {kept} existing kept")
    return sort_by_date(merged.values())


def _fold(a: CampaignRecord, b: CampaignRecord) -> CampaignRecord:
    """Combine two Meta rows that collide on the same key."""
    totals = {f: (getattr(a, f) or 0) + (getattr(b, f) or 0) for f in _SUMMABLE}
    spent = totals["spent"]
    impressions = totals["impressions"]
    reach = totals["reach"]
    clicks = totals["link_clicks"]
    purchases = totals["purchases"]

    cpc = spent / clicks if clicks > 0 else 0.0
    cpa = spent / purchases if purchases > 0 else 0.0
    cvr = purchases / clicks if clicks > 0 else 0.0
    return a.model_copy(
        update={
            **totals,
            "cpc": cpc,
            "cpa": cpa,
            "cvr": cvr,
            "clicks": clicks,
            "conversions": purchases,
            "ctr": clicks / impressions if impressions > 0 else 0.0,
            "cpm": spent / (impressions / 1000) if impressions > 0 else 0.0,
            "frequency": impressions / reach if reach > 0 else 0.0,
            "meta_cpc": cpc,
            "meta_cpa": cpa,
            "meta_cvr": cvr,
        }
    )


def merge_enrichment(
    existing: Iterable[CampaignRecord],
    external: Iterable[CampaignRecord],
) -> List[CampaignRecord]:
    """Overlay Meta enrichment fields onto matching working-set records."""
    by_key: Dict[tuple[str, str], CampaignRecord] = {}
    for record in external:
        prior = by_key.get(record.key)
        by_key[record.key] = _fold(prior, record) if prior else record

    merged: List[CampaignRecord] = []
    matched: set[tuple[str, str]] = set()
    for record in existing:
        overlay = by_key.get(record.key)
        if overlay is None:
            merged.append(record)
            continue
        merged.append(record.model_copy(update=enrichment_values(overlay)))
        matched.add(record.key)

    logger.info(
        f"Enrichment merge: {len(matched)} keys matched, "
        f"{len(by_key) - len(matched)} external keys discarded"
    )
    return sort_by_date(merged)
