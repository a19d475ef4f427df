"""
Inventory Upload Controller
API endpoint for bulk inventory row uploads
"""

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from controller.inventory_upload.dependencies import StoreFactory, get_store_factory
from core.config import Settings, get_settings
from services.inventory_upload.reporter import UploadReport
from services.inventory_upload.service import InventoryUploadService
from utils.constants import CORS_HEADERS, PHASE_INIT, PHASE_PARSE_BODY
from utils.logger import logger
from utils.schema.inventory_upload_schema import (
    StoreHealthResponse,
    UploadInventoryRequest,
    UploadInventoryResponse,
)


router = APIRouter(prefix="/api/inventory", tags=["Inventory Upload"])


def _respond(status_code: int, body: UploadInventoryResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=CORS_HEADERS
    )


def _reject(status_code: int, error: str, phase: str, settings: Settings) -> JSONResponse:
    logger.warning(f"Upload rejected ({status_code}) in {phase}: {error}")
    report = UploadReport(settings.MAX_SKIPPED_RETURN)
    return _respond(status_code, report.render(error=error, phase=phase))


@router.options("/upload")
async def upload_inventory_preflight():
    """CORS preflight"""
    return Response(status_code=204, headers=CORS_HEADERS)


@router.get("/upload/health", response_model=StoreHealthResponse)
async def upload_health(settings: Settings = Depends(get_settings)):
    """Verify the store settings reach the process (the key is never echoed)."""
    return StoreHealthResponse(
        ok=True,
        has_key=bool(settings.SUPABASE_SERVICE_ROLE_KEY),
        has_url=bool(settings.SUPABASE_URL),
        using_url=settings.SUPABASE_URL
    )


@router.post("/upload", response_model=UploadInventoryResponse)
async def upload_inventory(
    request: Request,
    settings: Settings = Depends(get_settings),
    store_factory: StoreFactory = Depends(get_store_factory)
):
    """
    Reconcile and insert inventory rows.

    **Example:**
    ```json
    {
      "rows": [
        {"sku": "NL-100", "brand": "Nell", "batch": "B-2025-01",
         "code128": "8901234567890", "date": "01/20/2025", "warranty": "12"}
      ]
    }
    ```

    **Resolves:**
    - brand by name (case-insensitive)
    - SKU by (brand, sku_code)
    - batch by batch_no, creating missing batches once

    **Returns:** inserted / duplicate / skipped counts and the first
    skipped rows with their reasons.
    """
    missing = settings.missing_store_credentials()
    if missing:
        return _reject(500, f"Missing {', '.join(missing)}", PHASE_INIT, settings)

    try:
        body = await request.json()
    except ValueError:
        return _reject(400, "Invalid JSON body", PHASE_PARSE_BODY, settings)

    try:
        upload = UploadInventoryRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        upload = UploadInventoryRequest()

    if not upload.rows:
        return _reject(400, "No rows provided (expected { rows: [...] })", PHASE_PARSE_BODY, settings)

    store = store_factory(settings)
    try:
        service = InventoryUploadService(settings, store)
        status_code, result = await run_in_threadpool(service.process, upload.rows)
    finally:
        store.close()
    return _respond(status_code, result)
