"""ADLENS — Store Grid Adapter.

Converts between the spreadsheet store's two-dimensional grid and
CampaignRecords. Row 0 is always the header row.
"""

from typing import Any, List, Sequence

from adlens.core.metric_registry import CANONICAL_FIELDS, CANONICAL_HEADERS
from adlens.models.record_models import CampaignRecord
from adlens.parsing.headers import resolve_columns
from adlens.parsing.rows import map_row
from adlens.core.logging import get_logger

logger = get_logger("store.adapter")


def parse_store_grid(values: Sequence[Sequence[Any]] | None) -> List[CampaignRecord]:
    """Parse a header-first grid into records, skipping unusable rows."""
    if not values or len(values) < 2:
        return []

    columns = resolve_columns(values[0])
    records: List[CampaignRecord] = []
    skipped = 0
    for i, row in enumerate(values[1:], start=1):
        record = map_row(row or [], columns, row_index=i)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    logger.info(
        f"Parsed {len(records)} records from store grid ({skipped} rows skipped)",
        extra={"rows": len(records)},
    )
    return records


def _cell_value(value: Any) -> Any:
    return "" if value is None else value


def records_to_grid(records: Sequence[CampaignRecord]) -> List[List[Any]]:
    """Render records in the canonical persisted layout."""
    grid: List[List[Any]] = [list(CANONICAL_HEADERS)]
    for record in records:
        grid.append(
            [_cell_value(getattr(record, f.name)) for f in CANONICAL_FIELDS]
        )
    return grid
