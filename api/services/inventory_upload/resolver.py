"""
Batched Resolver
Maps distinct lookup keys to store ids with chunked filter queries
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from core.config import Settings
from core.database import PostgRESTStore
from services.inventory_upload.key_deduplicator import (
    batch_lookup_key,
    brand_lookup_key,
    sku_lookup_key,
)
from utils.constants import (
    BATCHES_TABLE,
    BRANDS_TABLE,
    REASON_BRAND_NOT_FOUND,
    REASON_SKU_NOT_FOUND,
    SKUS_TABLE,
)
from utils.logger import logger
from utils.query.postgrest_queries import SelectQuery, and_, eq, ilike, in_, or_
from utils.schema.inventory_upload_schema import (
    BrandedRow,
    EntityId,
    NormalizedRow,
    ResolvedRow,
    SkippedRow,
)

KeyParts = Tuple[Optional[EntityId], str]


def chunked(items: Sequence, size: int):
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


class BatchedResolver:
    """Resolves brands, SKUs and batches for one request."""

    def __init__(self, store: PostgRESTStore, settings: Settings):
        self.store = store
        self.settings = settings

    def fetch_in_chunks(
        self,
        items: Sequence,
        chunk_size: int,
        build_query: Callable[[Sequence], SelectQuery]
    ) -> List[Dict[str, Any]]:
        """Issue one query per chunk and concatenate the results in order."""
        results: List[Dict[str, Any]] = []
        for part in chunked(list(items), chunk_size):
            results.extend(self.store.select(build_query(part)))
        return results

    # ------------------------------------------------------------------
    # Brands
    # ------------------------------------------------------------------

    def resolve_brands(self, brand_names: Sequence[str], chunk_size: int = None) -> Dict[str, Dict[str, Any]]:
        """Upper-cased brand name -> brand row, matched case-insensitively."""
        chunk_size = chunk_size or self.settings.BRAND_IN_CHUNK

        def build_query(part):
            return SelectQuery(
                BRANDS_TABLE,
                ["id", "name"],
                [or_(*(ilike("name", name) for name in part))]
            )

        brand_map: Dict[str, Dict[str, Any]] = {}
        for brand in self.fetch_in_chunks(brand_names, chunk_size, build_query):
            brand_map.setdefault(brand_lookup_key(brand.get("name")), brand)

        logger.info(f"Resolved {len(brand_map)} of {len(brand_names)} brand names")
        return brand_map

    # ------------------------------------------------------------------
    # SKUs
    # ------------------------------------------------------------------

    def resolve_skus(self, sku_keys: Dict[str, KeyParts], chunk_size: int = None) -> Dict[str, Dict[str, Any]]:
        """SKU lookup key -> sku row."""
        mode = self.settings.SKU_RESOLUTION_MODE
        chunk_size = chunk_size or self.settings.SKU_PAIR_CHUNK

        if mode == "global_code":
            def build_query(part):
                return SelectQuery(
                    SKUS_TABLE,
                    ["id", "sku_code", "brand_id"],
                    [in_("sku_code", [sku_code for _, sku_code in part])]
                )
        else:
            def build_query(part):
                return SelectQuery(
                    SKUS_TABLE,
                    ["id", "sku_code", "brand_id"],
                    [or_(*(and_(eq("brand_id", brand_id), eq("sku_code", sku_code)) for brand_id, sku_code in part))]
                )

        sku_map: Dict[str, Dict[str, Any]] = {}
        for sku in self.fetch_in_chunks(list(sku_keys.values()), chunk_size, build_query):
            key = sku_lookup_key(sku.get("brand_id"), sku.get("sku_code"), mode)
            sku_map.setdefault(key, sku)

        logger.info(f"Resolved {len(sku_map)} of {len(sku_keys)} SKU keys ({mode})")
        return sku_map

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def resolve_batches(self, batch_keys: Dict[str, KeyParts], chunk_size: int = None) -> Dict[str, Dict[str, Any]]:
        """Batch lookup key -> batch row."""
        scope = self.settings.BATCH_SCOPE
        chunk_size = chunk_size or self.settings.BATCH_IN_CHUNK

        if scope == "per_sku":
            def build_query(part):
                return SelectQuery(
                    BATCHES_TABLE,
                    ["id", "sku_id", "batch_no"],
                    [or_(*(and_(eq("sku_id", sku_id), eq("batch_no", batch_no)) for sku_id, batch_no in part))]
                )
        else:
            # stored spelling may differ in case from the uploaded one
            def build_query(part):
                return SelectQuery(
                    BATCHES_TABLE,
                    ["id", "sku_id", "batch_no"],
                    [or_(*(ilike("batch_no", batch_no) for _, batch_no in part))]
                )

        batch_map: Dict[str, Dict[str, Any]] = {}
        for batch in self.fetch_in_chunks(list(batch_keys.values()), chunk_size, build_query):
            key = batch_lookup_key(batch.get("sku_id"), batch.get("batch_no"), scope)
            batch_map.setdefault(key, batch)

        logger.info(f"Resolved {len(batch_map)} of {len(batch_keys)} batch keys ({scope})")
        return batch_map


def attach_brands(
    rows: Sequence[NormalizedRow],
    brand_map: Dict[str, Dict[str, Any]]
) -> Tuple[List[BrandedRow], List[SkippedRow]]:
    """Give each row its brand_id, skipping rows whose brand is unknown."""
    branded: List[BrandedRow] = []
    skipped: List[SkippedRow] = []
    for row in rows:
        brand = brand_map.get(brand_lookup_key(row.brand_name))
        if not brand:
            skipped.append(SkippedRow.from_row(row, REASON_BRAND_NOT_FOUND.format(brand_name=row.brand_name)))
            continue
        branded.append(BrandedRow(**row.model_dump(), brand_id=brand["id"]))
    return branded, skipped


def attach_skus(
    rows: Sequence[BrandedRow],
    sku_map: Dict[str, Dict[str, Any]],
    mode: str = "brand_scoped"
) -> Tuple[List[ResolvedRow], List[SkippedRow]]:
    """Give each row its sku_id, skipping rows whose SKU is unknown."""
    resolved: List[ResolvedRow] = []
    skipped: List[SkippedRow] = []
    for row in rows:
        sku = sku_map.get(sku_lookup_key(row.brand_id, row.sku_code, mode))
        if not sku:
            reason = REASON_SKU_NOT_FOUND.format(brand_name=row.brand_name, sku_code=row.sku_code)
            skipped.append(SkippedRow.from_row(row, reason))
            continue
        resolved.append(ResolvedRow(**row.model_dump(), sku_id=sku["id"]))
    return resolved, skipped
