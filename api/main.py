import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
import time

# Import routers
from controller.health import health_controller
from controller.inventory_upload import controller as inventory_upload_controller
from core.config import get_settings
from utils.logger import logger

logger.setLevel(get_settings().LOG_LEVEL.upper())

app = FastAPI(
    title="Inventory Upload API",
    version="1.0.0",
    description="Bulk reconciliation of inventory rows against brands, SKUs and batches"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

# Add logging middleware to trace requests/responses
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    logger.info(f"Incoming {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(
        f"Response {response.status_code} for {request.method} {request.url.path} "
        f"in {process_time:.4f}s"
    )

    return response

app.include_router(
    inventory_upload_controller.router
)

app.include_router(
    health_controller.router,
    tags=["System"]
)

@app.get("/", tags=["System"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": "Welcome to Inventory Upload API",
        "version": "1.0.0",
        "docs": "/docs"
    }

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
