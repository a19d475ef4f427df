"""
Outcome Reporter
Accumulates counters for one request and renders the response body
"""

from typing import Iterable, List, Optional

from utils.schema.inventory_upload_schema import SkippedRow, UploadInventoryResponse


class UploadReport:
    """Counters and skip diagnostics for a single upload request."""

    def __init__(self, max_skipped_return: int = 200):
        self.max_skipped_return = max_skipped_return
        self.inserted = 0
        self.duplicates = 0
        self.skipped: List[SkippedRow] = []

    def skip(self, rows: Iterable[SkippedRow]):
        self.skipped.extend(rows)

    def render(
        self,
        note: Optional[str] = None,
        error: Optional[str] = None,
        phase: Optional[str] = None
    ) -> UploadInventoryResponse:
        """The skip list is capped, the skip count never is."""
        return UploadInventoryResponse(
            added=self.inserted,
            addedCount=self.inserted,
            skipped=len(self.skipped),
            inserted=self.inserted,
            duplicates_skipped=self.duplicates,
            skippedRows=[
                row.model_dump(exclude_none=True)
                for row in self.skipped[:self.max_skipped_return]
            ],
            note=note,
            error=error,
            phase=phase
        )
