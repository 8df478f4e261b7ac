"""
Sarkari Pulse — Supabase Client (Singleton)
Shared connection used by the Supabase-backed scheme store.
"""

from supabase import create_client, Client
from functools import lru_cache
from sarkari_pulse.config import get_settings


@lru_cache()
def get_supabase_client() -> Client:
    """
    Returns a cached Supabase client instance.
    Uses the service role key when available (writes need it under RLS).
    """
    settings = get_settings()
    return create_client(
        supabase_url=settings.supabase_url,
        supabase_key=settings.supabase_service_role_key or settings.supabase_anon_key,
    )
