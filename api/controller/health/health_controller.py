from fastapi import APIRouter, Depends

from core.config import Settings, get_settings

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "Inventory Upload API is running"}

@router.get("/status")
async def status_check(settings: Settings = Depends(get_settings)):
    """Detailed status check endpoint"""
    missing = settings.missing_store_credentials()
    return {
        "status": "healthy" if not missing else "degraded",
        "message": "All services configured" if not missing else f"Missing {', '.join(missing)}",
        "services": {
            "store": "configured" if not missing else "not configured"
        },
        "modes": {
            "sku_resolution": settings.SKU_RESOLUTION_MODE,
            "batch_scope": settings.BATCH_SCOPE,
            "date_order": settings.DATE_ORDER,
            "duplicate_detection": settings.DUPLICATE_DETECTION
        }
    }
