# =============================================================================
# oncogest_core/data/__init__.py
# Remote data service access
# =============================================================================

from .supabase_client import (
    PAGE_SIZE,
    SupabaseService,
    get_supabase_client,
    get_cached_supabase_client,
)

__all__ = [
    "PAGE_SIZE",
    "SupabaseService",
    "get_supabase_client",
    "get_cached_supabase_client",
]
