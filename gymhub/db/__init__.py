from .supabase import (
    ConcurrentUpdateError,
    NotFoundError,
    SupabaseClient,
    SupabaseError,
    get_supabase_client,
)

__all__ = [
    "ConcurrentUpdateError",
    "NotFoundError",
    "SupabaseClient",
    "SupabaseError",
    "get_supabase_client",
]
