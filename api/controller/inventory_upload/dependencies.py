from typing import Callable

from core.config import Settings
from core.database import PostgRESTStore

StoreFactory = Callable[[Settings], PostgRESTStore]


def build_store(settings: Settings) -> PostgRESTStore:
    """Create a store client for one request."""
    return PostgRESTStore(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_ROLE_KEY,
        timeout=settings.STORE_TIMEOUT_SECONDS
    )


def get_store_factory() -> StoreFactory:
    """Store factory dependency, overridable in tests."""
    return build_store
