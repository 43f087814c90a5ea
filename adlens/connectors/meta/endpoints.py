"""ADLENS — Meta Insights Endpoints.

Fetches daily campaign-level insights. Explicit date ranges are split into
bounded chunks; each chunk's pagination is drained before the next chunk is
requested, so only one request is ever in flight.
"""

import json
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from adlens.config import settings
from adlens.connectors.meta.client import MetaClient, meta_base
from adlens.core.logging import get_logger

logger = get_logger("meta.endpoints")

INSIGHT_FIELDS = "campaign_id,campaign_name,spend,reach,impressions,actions"

# Only these action types are needed downstream
ACTION_TYPES = ["link_click", "omni_purchase"]
ACTION_FILTER = json.dumps(
    [{"field": "action_type", "operator": "IN", "value": ACTION_TYPES}]
)


def chunk_date_range(
    date_start: str,
    date_stop: str,
    max_days: int | None = None,
) -> List[tuple[str, str]]:
    """Split an inclusive date range into consecutive chunks.

    Every chunk spans at most `max_days` days; the last one is cut at
    `date_stop`. A 65-day range with max_days=30 yields 30 + 30 + 5.
    A reversed range yields no chunks.
    """
    max_days = max_days or settings.meta_chunk_days
    start = datetime.strptime(date_start, "%Y-%m-%d").date()
    stop = datetime.strptime(date_stop, "%Y-%m-%d").date()

    chunks: List[tuple[str, str]] = []
    cursor = start
    while cursor <= stop:
        chunk_end = min(cursor + timedelta(days=max_days - 1), stop)
        chunks.append((cursor.isoformat(), chunk_end.isoformat()))
        cursor = chunk_end + timedelta(days=1)
    return chunks


class MetaEndpoints:
    """Fetch raw insight rows from Meta."""

    def __init__(self, client: MetaClient):
        self.client = client

    def _insight_params(self, time_params: Dict[str, str]) -> Dict[str, Any]:
        return {
            "level": "campaign",
            "fields": INSIGHT_FIELDS,
            "time_increment": "1",
            "filtering": ACTION_FILTER,
            "limit": settings.meta_page_limit,
            **time_params,
        }

    async def fetch_campaign_insights(
        self,
        date_start: Optional[str] = None,
        date_stop: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch campaign-level insights broken down by day.

        Without a range a single maximum-history request is issued, which
        can be large and slow. Any error aborts the whole fetch; rows from
        chunks already fetched are discarded with it.
        """
        self.client.check_configured()
        url = f"{meta_base()}/{self.client.account_path}/insights"

        if not (date_start and date_stop):
            logger.info("Fetching maximum-history campaign insights")
            return await self.client._paginated_get(
                url, self._insight_params({"date_preset": "maximum"})
            )

        chunks = chunk_date_range(date_start, date_stop)
        rows: List[Dict[str, Any]] = []
        for i, (since, until) in enumerate(chunks, 1):
            time_range = json.dumps({"since": since, "until": until})
            logger.info(
                f"Fetching insights chunk {i}/{len(chunks)}: {since} → {until}",
                extra={"chunk": i},
            )
            data = await self.client._paginated_get(
                url, self._insight_params({"time_range": time_range})
            )
            rows.extend(data)

        logger.info(
            f"Fetched {len(rows)} campaign insight rows across {len(chunks)} chunk(s)",
            extra={"rows": len(rows)},
        )
        return rows
