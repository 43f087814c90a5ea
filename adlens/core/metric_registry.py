"""ADLENS — Unified Field Registry.

Defines the canonical set of record fields, which parser reads each one,
which header labels identify it in tabular sources, and where it sits in the
persisted store layout. Header candidates are bilingual: the native label
(Traditional Chinese, as exported by the ads console) first, English
synonyms after.
"""

from enum import Enum
from typing import Dict, List, Optional


class ParseKind(str, Enum):
    """Which scalar parser reads the raw cell."""

    DATE = "date"
    TEXT = "text"
    NUMBER = "number"
    PERCENTAGE = "percentage"


class FieldDefinition:
    """Describes a single record field and how tabular sources carry it.

    Enrichment fields are the ones the Meta sync owns; everything else is
    the core a tabular source must supply.
    """

    def __init__(
        self,
        name: str,
        parse_kind: ParseKind,
        candidates: List[str],
        header: Optional[str] = None,
        enrichment: bool = False,
    ):
        self.name = name
        self.parse_kind = parse_kind
        self.candidates = candidates
        self.header = header
        self.enrichment = enrichment

    def __repr__(self) -> str:
        kind = "enrichment" if self.enrichment else "core"
        return f"<Field {self.name} ({kind})>"


def _field(name, parse_kind, candidates, header=None, enrichment=False):
    return name, FieldDefinition(name, parse_kind, candidates, header, enrichment)


# ─────────────────────────────────────────────
# FIELDS, in persisted column order
# ─────────────────────────────────────────────

ALL_FIELDS: Dict[str, FieldDefinition] = dict(
    [
        # Core: always present on tabular imports
        _field("date", ParseKind.DATE, ["日期", "Date"], "Date"),
        _field(
            "campaign_name",
            ParseKind.TEXT,
            ["廣告活動", "Campaign", "Campaign Name"],
            "Campaign Name",
        ),
        _field("spent", ParseKind.NUMBER, ["費用", "spent", "Spent"], "Spent"),
        _field("cpc", ParseKind.NUMBER, ["流量成本", "cpc", "CPC"], "CPC"),
        _field("roas", ParseKind.NUMBER, ["ROAS", "roas"], "ROAS"),
        # Stored as a fraction
        _field("cvr", ParseKind.PERCENTAGE, ["CVR", "cvr"], "CVR"),
        _field("cpa", ParseKind.NUMBER, ["CPA", "cpa"], "CPA"),
        # Enrichment: written by the Meta sync, read back from the store
        _field("reach", ParseKind.NUMBER, ["觸及人數", "Reach", "reach"], "Reach", True),
        _field(
            "impressions",
            ParseKind.NUMBER,
            ["曝光次數", "Impressions", "impressions"],
            "Impressions",
            True,
        ),
        _field("cpm", ParseKind.NUMBER, ["CPM", "cpm"], "CPM", True),
        _field("ctr", ParseKind.PERCENTAGE, ["CTR", "ctr"], "CTR", True),
        _field(
            "frequency",
            ParseKind.NUMBER,
            ["頻率", "Frequency", "frequency"],
            "Frequency",
            True,
        ),
        _field(
            "link_clicks",
            ParseKind.NUMBER,
            ["連結點擊次數", "Link Clicks", "link_clicks"],
            "Link Clicks",
            True,
        ),
        _field(
            "purchases",
            ParseKind.NUMBER,
            ["購買次數", "Purchases", "purchases"],
            "Purchases",
            True,
        ),
        # Meta-side ratios, tracked apart from the store's own cpc/cpa/cvr
        _field("meta_cpc", ParseKind.NUMBER, [], enrichment=True),
        _field("meta_cpa", ParseKind.NUMBER, [], enrichment=True),
        _field("meta_cvr", ParseKind.PERCENTAGE, [], enrichment=True),
    ]
)


# ─────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────

CORE_FIELDS: Dict[str, FieldDefinition] = {
    name: f for name, f in ALL_FIELDS.items() if not f.enrichment
}
ENRICHMENT_FIELDS: Dict[str, FieldDefinition] = {
    name: f for name, f in ALL_FIELDS.items() if f.enrichment
}

# Persisted column order: every field that owns a header label
CANONICAL_FIELDS: List[FieldDefinition] = [
    f for f in ALL_FIELDS.values() if f.header is not None
]
CANONICAL_HEADERS: List[str] = [f.header for f in CANONICAL_FIELDS]

# Fields a workbook upload is expected to carry
WORKBOOK_FIELDS: List[str] = list(CORE_FIELDS)
