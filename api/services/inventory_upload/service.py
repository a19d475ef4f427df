"""
Inventory Upload Service
Reconciles uploaded inventory rows against brands, SKUs and batches and
bulk-inserts the resolvable ones into the inventory table.
"""

from typing import Any, List, Tuple

from core.config import Settings
from core.database import PostgRESTStore, StoreRequestError
from services.inventory_upload.batch_upserter import BatchUpserter, build_missing_batch_payload
from services.inventory_upload.errors import PhaseError
from services.inventory_upload.inventory_inserter import ChunkedInventoryInserter, InsertOutcome
from services.inventory_upload.key_deduplicator import (
    collect_batch_keys,
    distinct_brand_names,
    distinct_sku_keys,
)
from services.inventory_upload.normalizer import normalize_rows
from services.inventory_upload.payload_builder import build_inventory_payload
from services.inventory_upload.reporter import UploadReport
from services.inventory_upload.resolver import BatchedResolver, attach_brands, attach_skus
from utils.constants import (
    NOTE_ALL_MISSING_BRANDS,
    NOTE_ALL_MISSING_FIELDS,
    NOTE_ALL_MISSING_SKUS,
    NOTE_NOTHING_TO_INSERT,
    PHASE_BUILD_PAYLOAD,
    PHASE_DONE,
    PHASE_INIT,
    PHASE_INSERT_INVENTORY,
    PHASE_NORMALIZE,
    PHASE_PRELOAD_BATCHES,
    PHASE_PRELOAD_BRANDS,
    PHASE_PRELOAD_SKUS,
    PHASE_REFETCH_BATCHES,
    PHASE_UPSERT_BATCHES,
)
from utils.logger import logger
from utils.schema.inventory_upload_schema import UploadInventoryResponse

UploadResult = Tuple[int, UploadInventoryResponse]


class InventoryUploadService:
    """Runs the reconciliation pipeline for one upload request."""

    def __init__(self, settings: Settings, store: PostgRESTStore):
        self.settings = settings
        self.store = store
        self.resolver = BatchedResolver(store, settings)
        self.upserter = BatchUpserter(store, settings)
        self.inserter = ChunkedInventoryInserter(store, settings)
        self.report = UploadReport(settings.MAX_SKIPPED_RETURN)
        self.phase = PHASE_INIT

    def summary_note(self) -> str:
        if self.settings.SKU_RESOLUTION_MODE == "global_code":
            skus = "preloaded SKUs by sku_code"
        else:
            skus = "preloaded SKUs by (brand_id, sku_code)"
        if self.settings.BATCH_SCOPE == "per_sku":
            batches = "upserted per-SKU batches by (sku_id, batch_no)"
        else:
            batches = "upserted global batches by batch_no"
        return f"Batched mode: preloaded brands (chunked), {skus}, {batches}, inserted inventory (chunked)."

    def process(self, raw_rows: List[Any]) -> UploadResult:
        """
        Process raw rows end to end.

        Row-level problems end up in the skip list and the result is 200.
        A failing store call aborts with 500 and the phase it happened in.

        Returns:
            (HTTP status code, response body)
        """
        logger.info(f"Inventory upload started with {len(raw_rows)} rows")
        try:
            return self._run(raw_rows)
        except PhaseError as e:
            logger.error(f"Inventory upload aborted in {e.phase}: {e.message}")
            return 500, self.report.render(error=e.message, phase=e.phase)
        except StoreRequestError as e:
            logger.error(f"Store request failed in {self.phase}: {e.message}")
            return 500, self.report.render(error=e.message, phase=self.phase)
        except Exception as e:
            logger.exception(f"Unexpected error in {self.phase}")
            return 500, self.report.render(error=f"Unexpected error: {str(e)}", phase=self.phase)

    def _early_exit(self, note: str) -> UploadResult:
        logger.info(f"{note} ({len(self.report.skipped)} skipped)")
        return 200, self.report.render(note=note, phase=self.phase)

    def _run(self, raw_rows: List[Any]) -> UploadResult:
        settings = self.settings
        report = self.report

        # 0) Normalize
        self.phase = PHASE_NORMALIZE
        rows, skipped = normalize_rows(raw_rows, settings.DATE_ORDER)
        report.skip(skipped)
        if not rows:
            return self._early_exit(NOTE_ALL_MISSING_FIELDS)

        # 1) Brands
        self.phase = PHASE_PRELOAD_BRANDS
        brand_map = self.resolver.resolve_brands(distinct_brand_names(rows))
        branded, skipped = attach_brands(rows, brand_map)
        report.skip(skipped)
        if not branded:
            return self._early_exit(NOTE_ALL_MISSING_BRANDS)

        # 2) SKUs, scoped by brand unless configured otherwise
        self.phase = PHASE_PRELOAD_SKUS
        mode = settings.SKU_RESOLUTION_MODE
        sku_map = self.resolver.resolve_skus(distinct_sku_keys(branded, mode))
        resolved, skipped = attach_skus(branded, sku_map, mode)
        report.skip(skipped)
        if not resolved:
            return self._early_exit(NOTE_ALL_MISSING_SKUS)

        # 3) Existing batches
        self.phase = PHASE_PRELOAD_BATCHES
        batch_keys = collect_batch_keys(resolved, settings.BATCH_SCOPE)
        batch_map = self.resolver.resolve_batches(batch_keys.keys)

        # 4) Create missing batches, then re-read their ids
        self.phase = PHASE_UPSERT_BATCHES
        missing = build_missing_batch_payload(batch_keys, batch_map)
        if self.upserter.upsert_missing(missing):
            self.phase = PHASE_REFETCH_BATCHES
            batch_map = self.resolver.resolve_batches(batch_keys.keys)

        # 5) Payload
        self.phase = PHASE_BUILD_PAYLOAD
        payload, skipped = build_inventory_payload(resolved, batch_map, settings.BATCH_SCOPE)
        report.skip(skipped)
        if not payload:
            return self._early_exit(NOTE_NOTHING_TO_INSERT)

        # 6) Chunked insert
        self.phase = PHASE_INSERT_INVENTORY
        outcome = InsertOutcome()
        try:
            self.inserter.insert(payload, outcome)
        finally:
            report.inserted += outcome.inserted
            report.duplicates += outcome.duplicates
            report.skip(outcome.skipped)

        self.phase = PHASE_DONE
        logger.info(
            f"Inventory upload done: {report.inserted} inserted, "
            f"{report.duplicates} duplicates, {len(report.skipped)} skipped"
        )
        return 200, report.render(note=self.summary_note())
