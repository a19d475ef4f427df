"""
Batch Upserter
Creates the batches no row could resolve, tolerating concurrent creators
"""

import re
from typing import Any, Dict, List

from core.config import Settings
from core.database import PostgRESTStore, StoreResponse
from services.inventory_upload.errors import PhaseError
from services.inventory_upload.key_deduplicator import BatchKeys
from utils.constants import BATCHES_TABLE, MERGE_DUPLICATES, PHASE_UPSERT_BATCHES
from utils.logger import logger
from utils.text import truncate

_UNIQUE_VIOLATION = re.compile(r"23505|duplicate key value|unique constraint", re.IGNORECASE)


def build_missing_batch_payload(batch_keys: BatchKeys, batch_map: Dict[str, Any]) -> List[Dict[str, Any]]:
    """One creation record per unresolved batch key, in first-seen order."""
    payload = []
    for key, (_, batch_no) in batch_keys.keys.items():
        if key in batch_map:
            continue
        record = {
            'sku_id': batch_keys.representative_sku[key],
            'batch_no': batch_no,
        }
        earliest = batch_keys.earliest_date.get(key)
        if earliest:
            record['date_in'] = earliest
        payload.append(record)
    return payload


def is_unique_violation(response: StoreResponse) -> bool:
    """A 409 or a unique-violation message means another writer got there first."""
    return response.status_code == 409 or bool(_UNIQUE_VIOLATION.search(response.text or ""))


class BatchUpserter:
    """Submits missing batches in a single merge-on-conflict write."""

    def __init__(self, store: PostgRESTStore, settings: Settings):
        self.store = store
        self.settings = settings

    def upsert_missing(self, payload: List[Dict[str, Any]]) -> bool:
        """
        Upsert the given batch records.

        Returns:
            True when a write was issued, False when there was nothing to create

        Raises:
            PhaseError: the store rejected the write for a reason other than
                a unique violation
        """
        if not payload:
            return False

        logger.info(f"Upserting {len(payload)} missing batches on {self.settings.BATCH_CONFLICT_TARGET}")
        response = self.store.write(
            BATCHES_TABLE,
            payload,
            on_conflict=self.settings.BATCH_CONFLICT_TARGET,
            resolution=MERGE_DUPLICATES,
            returning="minimal"
        )

        if response.ok:
            return True

        if is_unique_violation(response):
            logger.warning(f"Batch upsert hit an existing batch (status {response.status_code}), continuing")
            return True

        message = f"Failed to upsert batches: {truncate(response.text, self.settings.ERROR_TEXT_LIMIT)}"
        logger.error(message)
        raise PhaseError(PHASE_UPSERT_BATCHES, message)
