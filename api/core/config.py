from functools import lru_cache
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """
    Runtime configuration for the inventory upload API.

    Values come from the process environment (and a local .env file).
    An instance is handed to each request through get_settings(),
    nothing below is read from module globals at request time.
    """

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    # Store connection
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    STORE_TIMEOUT_SECONDS: float = 30.0

    # Chunking
    INVENTORY_CHUNK_SIZE: int = 300
    MAX_SKIPPED_RETURN: int = 200
    BRAND_IN_CHUNK: int = 60
    SKU_PAIR_CHUNK: int = 40
    BATCH_IN_CHUNK: int = 60
    ERROR_TEXT_LIMIT: int = 300

    # Uniqueness constraints used for on_conflict
    BATCH_CONFLICT_TARGET: str = "batch_no_norm"
    INVENTORY_CONFLICT_TARGET: str = "barcode"

    # Resolution behaviour
    SKU_RESOLUTION_MODE: Literal["brand_scoped", "global_code"] = "brand_scoped"
    BATCH_SCOPE: Literal["global", "per_sku"] = "global"
    DATE_ORDER: Literal["MDY", "DMY"] = "MDY"
    DUPLICATE_DETECTION: Literal["echo", "count"] = "echo"

    LOG_LEVEL: str = "INFO"

    def missing_store_credentials(self) -> List[str]:
        """Names of the store settings that are not configured."""
        missing = []
        if not self.SUPABASE_SERVICE_ROLE_KEY:
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        if not self.SUPABASE_URL:
            missing.append("SUPABASE_URL")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
