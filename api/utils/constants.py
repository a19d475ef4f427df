#####input field aliases#####
# Canonical field -> accepted input names, first non-null wins
FIELD_ALIASES = {
    'sku_code': ['sku_code', 'sku', 'code'],
    'brand_name': ['brand_name', 'brand', 'brandname'],
    'batch_no': ['batch_no', 'batch', 'batchno'],
    'barcode': ['barcode', 'code128'],
    'date_in': ['date_in', 'date', 'datein'],
    'warranty_months': ['warranty_months', 'warranty', 'warranty_month', 'warrantyMonths'],
}

REQUIRED_FIELDS = ['sku_code', 'brand_name', 'batch_no', 'barcode', 'date_in']


#####store tables#####
BRANDS_TABLE = "brands"
SKUS_TABLE = "skus"
BATCHES_TABLE = "batches"
INVENTORY_TABLE = "inventory"

MERGE_DUPLICATES = "merge-duplicates"
IGNORE_DUPLICATES = "ignore-duplicates"

# Separates the parts of a composite lookup key
KEY_SEPARATOR = "┃"


#####pipeline phases#####
PHASE_INIT = "init"
PHASE_PARSE_BODY = "parse_body"
PHASE_NORMALIZE = "normalize_rows"
PHASE_PRELOAD_BRANDS = "preload_brands"
PHASE_PRELOAD_SKUS = "preload_skus"
PHASE_PRELOAD_BATCHES = "preload_batches"
PHASE_UPSERT_BATCHES = "upsert_batches"
PHASE_REFETCH_BATCHES = "refetch_batches"
PHASE_BUILD_PAYLOAD = "build_inventory_payload"
PHASE_INSERT_INVENTORY = "insert_inventory_chunks"
PHASE_DONE = "done"


#####skip reasons#####
REASON_MISSING_FIELDS = "Missing required field(s). Required: " + ", ".join(REQUIRED_FIELDS)
REASON_BRAND_NOT_FOUND = 'Brand not found: "{brand_name}"'
REASON_SKU_NOT_FOUND = 'SKU not found for (brand_name="{brand_name}", sku_code="{sku_code}")'
REASON_BATCH_NOT_RESOLVED = 'Batch not resolved for (batch_no="{batch_no}")'
REASON_DUPLICATE_BARCODE = 'Barcode already exists (duplicate): "{barcode}"'
REASON_BULK_INSERT_ERROR = "Store error (bulk insert): {error}"


#####early exit notes#####
NOTE_ALL_MISSING_FIELDS = "All rows skipped due to missing required fields"
NOTE_ALL_MISSING_BRANDS = "All rows skipped due to missing brands"
NOTE_ALL_MISSING_SKUS = "All rows skipped due to missing SKUs"
NOTE_NOTHING_TO_INSERT = "Nothing to insert after resolving SKUs/Batches."


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type",
}
