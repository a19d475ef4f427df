"""
Payload Builder
Turns fully resolved rows into inventory records
"""

from typing import Any, Dict, List, Sequence, Tuple

from services.inventory_upload.key_deduplicator import batch_lookup_key
from utils.constants import REASON_BATCH_NOT_RESOLVED
from utils.schema.inventory_upload_schema import InventoryPayloadItem, ResolvedRow, SkippedRow


def build_inventory_payload(
    rows: Sequence[ResolvedRow],
    batch_map: Dict[str, Dict[str, Any]],
    scope: str = "global"
) -> Tuple[List[InventoryPayloadItem], List[SkippedRow]]:
    """
    Attach batch ids and keep the denormalized business fields
    (sku_code, brand_name, batch_no) next to the foreign keys.
    """
    payload: List[InventoryPayloadItem] = []
    skipped: List[SkippedRow] = []

    for row in rows:
        batch = batch_map.get(batch_lookup_key(row.sku_id, row.batch_no, scope))
        if not batch:
            skipped.append(SkippedRow.from_row(row, REASON_BATCH_NOT_RESOLVED.format(batch_no=row.batch_no)))
            continue

        payload.append(InventoryPayloadItem(
            sku_code=row.sku_code,
            brand_name=row.brand_name,
            batch_no=row.batch_no,
            sku_id=row.sku_id,
            batch_id=batch["id"],
            barcode=row.barcode,
            date_in=row.date_in,
            warranty_months=row.warranty_months,
            source_index=row.source_index
        ))

    return payload, skipped
