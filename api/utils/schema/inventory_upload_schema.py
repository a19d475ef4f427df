"""
Pydantic Schemas for the Inventory Upload pipeline
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union


EntityId = Union[int, str]


# ============================================================================
# REQUEST
# ============================================================================

class UploadInventoryRequest(BaseModel):
    """Body of POST /api/inventory/upload"""
    rows: List[Any] = Field(default_factory=list, description="Raw CSV-derived rows")


# ============================================================================
# PIPELINE ROWS
# ============================================================================

class NormalizedRow(BaseModel):
    """A row after alias remapping, trimming and date/int coercion."""
    sku_code: str
    brand_name: str
    batch_no: str
    barcode: str
    date_in: str
    warranty_months: Optional[int] = None
    source_index: int

    class Config:
        frozen = True


class BrandedRow(NormalizedRow):
    brand_id: EntityId


class ResolvedRow(BrandedRow):
    sku_id: EntityId


class InventoryPayloadItem(BaseModel):
    """One record sent to the inventory table."""
    sku_code: str
    brand_name: str
    batch_no: str
    sku_id: EntityId
    batch_id: EntityId
    barcode: str
    date_in: str
    warranty_months: Optional[int] = None
    source_index: int = Field(..., exclude=True)

    class Config:
        frozen = True


class SkippedRow(BaseModel):
    """Diagnostic record for a row that was not inserted."""
    sku_code: str = ""
    brand_name: str = ""
    batch_no: str = ""
    barcode: str = ""
    date_in: str = ""
    warranty_months: Optional[int] = None
    source_index: Optional[int] = None
    brand_id: Optional[EntityId] = None
    sku_id: Optional[EntityId] = None
    batch_id: Optional[EntityId] = None
    reason: str

    @classmethod
    def from_row(cls, row: BaseModel, reason: str) -> "SkippedRow":
        """Carry every known field of a pipeline row alongside the reason."""
        return cls(**row.model_dump(), reason=reason)


# ============================================================================
# RESPONSE
# ============================================================================

class UploadInventoryResponse(BaseModel):
    """Uniform response shape, present on success and failure alike."""
    added: int = 0
    addedCount: int = 0
    skipped: int = 0
    inserted: int = 0
    duplicates_skipped: int = 0
    skippedRows: List[Dict[str, Any]] = Field(default_factory=list)
    note: Optional[str] = None
    error: Optional[str] = None
    phase: Optional[str] = None


class StoreHealthResponse(BaseModel):
    ok: bool = True
    has_key: bool
    has_url: bool
    using_url: Optional[str] = None
