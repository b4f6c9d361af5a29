# reconciler/dependencies.py

"""
Store dependency for FastAPI.

Routes take ``store: ReconciliationStore = Depends(get_store)``; tests
override it with a fresh InMemoryStore.
"""

from functools import lru_cache

from reconciler.config import get_settings
from reconciler.store import InMemoryStore, ReconciliationStore


@lru_cache()
def _configured_store() -> ReconciliationStore:
    settings = get_settings()

    if settings.storage_backend == "supabase":
        # Imported here so the memory backend doesn't need Supabase credentials
        from reconciler.database import SupabaseStore

        return SupabaseStore()

    return InMemoryStore()


def get_store() -> ReconciliationStore:
    """The process-wide store selected by ``storage_backend``."""
    return _configured_store()
