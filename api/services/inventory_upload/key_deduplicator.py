"""
Key Deduplicator
Derives the minimal sets of lookup keys needed to resolve a batch of rows.
All collections preserve first-occurrence order so results are deterministic.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from utils.constants import KEY_SEPARATOR
from utils.schema.inventory_upload_schema import EntityId, NormalizedRow, BrandedRow, ResolvedRow


def brand_lookup_key(name: str) -> str:
    return (name or "").strip().upper()


def sku_lookup_key(brand_id: Optional[EntityId], sku_code: str, mode: str = "brand_scoped") -> str:
    if mode == "global_code":
        return sku_code
    return f"{brand_id}{KEY_SEPARATOR}{sku_code}"


def batch_lookup_key(sku_id: Optional[EntityId], batch_no: str, scope: str = "global") -> str:
    """
    Per-SKU batches match on the exact batch_no. Global batches share one
    row per trimmed, upper-cased batch_no, matching the batch_no_norm
    unique constraint.
    """
    if scope == "per_sku":
        return f"{sku_id}{KEY_SEPARATOR}{batch_no}"
    return (batch_no or "").strip().upper()


def distinct_brand_names(rows: Iterable[NormalizedRow]) -> List[str]:
    """Brand names to look up, deduplicated case-insensitively."""
    seen = {}
    for row in rows:
        key = brand_lookup_key(row.brand_name)
        if key not in seen:
            seen[key] = row.brand_name
    return list(seen.values())


def distinct_sku_keys(
    rows: Iterable[BrandedRow],
    mode: str = "brand_scoped"
) -> Dict[str, Tuple[Optional[EntityId], str]]:
    """
    Map of SKU lookup key -> (brand_id, sku_code).

    In "global_code" mode brand_id is None, SKUs are identified by code only.
    """
    keys: Dict[str, Tuple[Optional[EntityId], str]] = {}
    for row in rows:
        key = sku_lookup_key(row.brand_id, row.sku_code, mode)
        if key not in keys:
            brand_id = None if mode == "global_code" else row.brand_id
            keys[key] = (brand_id, row.sku_code)
    return keys


@dataclass
class BatchKeys:
    """Distinct batch keys plus the creation-time values for each."""
    keys: Dict[str, Tuple[Optional[EntityId], str]] = field(default_factory=dict)
    earliest_date: Dict[str, str] = field(default_factory=dict)
    representative_sku: Dict[str, EntityId] = field(default_factory=dict)


def collect_batch_keys(rows: Iterable[ResolvedRow], scope: str = "global") -> BatchKeys:
    """
    Group rows by batch key.

    The first row seen for a key supplies its representative SKU. The
    earliest date_in is the minimum ISO string, which sorts chronologically.
    """
    result = BatchKeys()
    for row in rows:
        key = batch_lookup_key(row.sku_id, row.batch_no, scope)
        if key not in result.keys:
            sku_id = row.sku_id if scope == "per_sku" else None
            result.keys[key] = (sku_id, row.batch_no)
            result.representative_sku[key] = row.sku_id

        earliest = result.earliest_date.get(key)
        if row.date_in and (earliest is None or row.date_in < earliest):
            result.earliest_date[key] = row.date_in
    return result
