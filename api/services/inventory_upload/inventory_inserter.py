"""
Chunked Bulk Inserter
Inserts inventory records in bounded chunks and classifies every row
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from core.config import Settings
from core.database import PostgRESTStore, StoreResponse
from services.inventory_upload.resolver import chunked
from utils.constants import (
    IGNORE_DUPLICATES,
    INVENTORY_TABLE,
    REASON_BULK_INSERT_ERROR,
    REASON_DUPLICATE_BARCODE,
)
from utils.logger import logger
from utils.schema.inventory_upload_schema import InventoryPayloadItem, SkippedRow
from utils.text import truncate


@dataclass
class InsertOutcome:
    inserted: int = 0
    duplicates: int = 0
    skipped: List[SkippedRow] = field(default_factory=list)


class ChunkedInventoryInserter:
    """Ignore-duplicate bulk inserts keyed on the barcode constraint."""

    def __init__(self, store: PostgRESTStore, settings: Settings):
        self.store = store
        self.settings = settings

    def insert(self, payload: Sequence[InventoryPayloadItem], outcome: Optional[InsertOutcome] = None) -> InsertOutcome:
        """
        Insert all records chunk by chunk.

        A failed chunk skips all of its rows and processing moves on. Pass
        an existing outcome to keep counters visible if a later chunk raises.
        """
        outcome = outcome if outcome is not None else InsertOutcome()
        chunk_size = self.settings.INVENTORY_CHUNK_SIZE
        echo = self.settings.DUPLICATE_DETECTION == "echo"

        for number, chunk in enumerate(chunked(list(payload), chunk_size), start=1):
            logger.info(f"Inserting inventory chunk {number} ({len(chunk)} rows)")
            response = self.store.write(
                INVENTORY_TABLE,
                [item.model_dump() for item in chunk],
                on_conflict=self.settings.INVENTORY_CONFLICT_TARGET,
                resolution=IGNORE_DUPLICATES,
                returning="representation" if echo else "minimal",
                count=None if echo else "exact"
            )

            if not response.ok:
                self._skip_failed_chunk(chunk, response, outcome)
                continue

            echoed = response.json_rows() if echo else None
            if echoed is not None:
                self._classify_by_echo(chunk, echoed, outcome)
            else:
                if echo:
                    logger.warning(f"Chunk {number}: store did not echo inserted rows, counting only")
                self._classify_by_count(chunk, response, outcome)

        logger.info(f"Inventory insert finished: {outcome.inserted} inserted, {outcome.duplicates} duplicates")
        return outcome

    def _skip_failed_chunk(self, chunk, response: StoreResponse, outcome: InsertOutcome):
        error = truncate(response.text, self.settings.ERROR_TEXT_LIMIT)
        logger.warning(f"Bulk insert chunk rejected (status {response.status_code}): {error}")
        reason = REASON_BULK_INSERT_ERROR.format(error=error)
        for item in chunk:
            outcome.skipped.append(self._skipped(item, reason))

    def _classify_by_echo(self, chunk, echoed, outcome: InsertOutcome):
        # One echoed row accounts for exactly one submitted row
        returned = Counter(str(row.get("barcode")) for row in echoed if isinstance(row, dict))
        outcome.inserted += len(echoed)
        for item in chunk:
            if returned[item.barcode] > 0:
                returned[item.barcode] -= 1
                continue
            outcome.duplicates += 1
            outcome.skipped.append(self._skipped(item, REASON_DUPLICATE_BARCODE.format(barcode=item.barcode)))

    def _classify_by_count(self, chunk, response: StoreResponse, outcome: InsertOutcome):
        inserted = response.affected_count()
        if inserted is None:
            inserted = 0
        inserted = min(inserted, len(chunk))
        outcome.inserted += inserted
        outcome.duplicates += len(chunk) - inserted

    @staticmethod
    def _skipped(item: InventoryPayloadItem, reason: str) -> SkippedRow:
        return SkippedRow(**item.model_dump(), source_index=item.source_index, reason=reason)
